"""
Change-risk responder.

Maps one file's risk level to a testing escalation, terminal in one step:

    high    -> test branch + flag for comprehensive testing + notify integrity monitor
    medium  -> test branch + flag for testing
    low     -> log only (passive monitoring)
    other   -> treated as high, plus a manual review request

When a test branch cannot be created (no repository, or git refuses), the
flag becomes a manual review request with no branch ref.

Branch refs are ``test-<epoch ms>-<sanitized filename>``. Every escalation
gets its own ref; a ref already issued by this responder is suffixed
rather than reused.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

from .config import EngineConfig
from .errors import AutoverError, ConfigurationError
from .impact.classifier import classify_file
from .models import EscalationStatus, FileChange, FileImpact, RiskLevel, TestEscalation
from .status import ComponentStatus, StatusReporting
from .vcs.backend import VcsBackend
from .vcs.executor import BoundedBackend
from .vcs.git import GitBackend

logger = logging.getLogger(__name__)
integrity_logger = logging.getLogger("autover.integrity")

Notifier = Callable[[FileImpact, TestEscalation], None]


def log_integrity_notice(impact: FileImpact, escalation: TestEscalation) -> None:
    """Default integrity monitor: a warning on the ``autover.integrity`` logger."""
    integrity_logger.warning(
        "High-risk change to %s (score %d, %s): %s",
        impact.file,
        impact.score,
        escalation.branch_ref or "no test branch",
        escalation.reason,
    )


def sanitize_ref_component(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "-", name)


class EscalationLog:
    """Append-only JSON Lines log of testing flags (.autover/escalations.jsonl)."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()

    def append(self, escalation: TestEscalation) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(escalation.to_dict()) + "\n")

    def read_all(self) -> list[dict]:
        if not self.path.exists():
            return []
        records = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    try:
                        records.append(json.loads(line))
                    except json.JSONDecodeError:
                        continue
        return records


class ChangeRiskResponder(StatusReporting):
    def __init__(
        self,
        backend: VcsBackend | None,
        escalation_log: EscalationLog | None = None,
        notifier: Notifier | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            backend: Where test branches are created (None = every branch
                escalation becomes a manual review request)
            escalation_log: Where testing flags are stored
            notifier: Integrity-monitor callback for high-risk changes
            config: Engine config (classification thresholds)
            clock: Seconds since epoch; injectable for deterministic refs
        """
        self.backend = backend
        self.escalation_log = escalation_log
        self.notifier = notifier
        self.config = config or EngineConfig()
        self.clock = clock

        self._lock = threading.Lock()
        self._issued_refs: set[str] = set()
        self.escalations: list[TestEscalation] = []

    # --- Branches ---

    def branch_ref_for(self, file: str) -> str:
        """A fresh, never-before-issued branch ref for ``file``."""
        millis = int(self.clock() * 1000)
        base = f"test-{millis}-{sanitize_ref_component(file)}"
        with self._lock:
            ref = base
            n = 2
            while ref in self._issued_refs:
                ref = f"{base}-{n}"
                n += 1
            self._issued_refs.add(ref)
        return ref

    def _create_branch(self, ref: str) -> None:
        if self.backend is None:
            raise ConfigurationError("no repository backend for test branch", {"branch_ref": ref})
        self.backend.create_branch(ref, "HEAD")

    # --- Responses ---

    def respond(self, impact: FileImpact) -> TestEscalation:
        """Escalate one file impact. Never raises for VCS failures."""
        level = impact.risk_level.value if isinstance(impact.risk_level, RiskLevel) else str(impact.risk_level)

        if level == RiskLevel.LOW.value:
            escalation = self._log_only(impact, level)
        elif level == RiskLevel.MEDIUM.value:
            escalation = self._branch_and_flag(impact, level, notify=False, manual_review=False)
        elif level == RiskLevel.HIGH.value:
            escalation = self._branch_and_flag(impact, level, notify=True, manual_review=False)
        else:
            logger.warning("Unclassifiable risk %r for %s; treating as high", level, impact.file)
            escalation = self._branch_and_flag(impact, level, notify=True, manual_review=True)

        with self._lock:
            self.escalations.append(escalation)
        return escalation

    def escalate_changes(self, changes: Sequence[FileChange]) -> list[TestEscalation]:
        return [self.respond(classify_file(c, self.config)) for c in changes]

    def _log_only(self, impact: FileImpact, level: str) -> TestEscalation:
        logger.info("Low impact change to %s (score %d); monitoring only", impact.file, impact.score)
        return TestEscalation(
            file=impact.file,
            risk_level=level,
            branch_ref=None,
            status=EscalationStatus.LOGGED,
            created_at=datetime.now(timezone.utc).isoformat(),
            reason="passive monitoring",
        )

    def _branch_and_flag(
        self,
        impact: FileImpact,
        level: str,
        *,
        notify: bool,
        manual_review: bool,
    ) -> TestEscalation:
        created_at = datetime.now(timezone.utc).isoformat()
        ref: str | None = self.branch_ref_for(impact.file)

        comprehensive = level == RiskLevel.HIGH.value or manual_review
        reason = "comprehensive testing" if comprehensive else "testing"
        if manual_review:
            reason += "; manual review requested"

        try:
            self._create_branch(ref)
        except AutoverError as e:
            logger.error("Could not create test branch %s for %s: %s", ref, impact.file, e)
            ref = None
            manual_review = True
            reason = f"branch creation failed: {e.message}"

        escalation = TestEscalation(
            file=impact.file,
            risk_level=level,
            branch_ref=ref,
            status=EscalationStatus.MANUAL_REVIEW if manual_review else EscalationStatus.FLAGGED,
            created_at=created_at,
            notified=notify and self.notifier is not None,
            reason=reason,
        )

        if self.escalation_log is not None:
            try:
                self.escalation_log.append(escalation)
            except OSError as e:
                logger.error("Could not store testing flag for %s: %s", impact.file, e)
                escalation = replace(escalation, status=EscalationStatus.CREATED, reason=f"flag not stored: {e}")

        if escalation.notified:
            try:
                self.notifier(impact, escalation)
            except Exception:
                logger.exception("Integrity notifier failed for %s", impact.file)
                escalation = replace(escalation, notified=False)

        logger.info("Escalated %s (%s) on %s: %s", impact.file, level, ref or "no branch", escalation.status.value)
        return escalation

    def close(self) -> None:
        if isinstance(self.backend, BoundedBackend):
            self.backend.shutdown()

    # --- Status ---

    def get_status(self) -> ComponentStatus:
        with self._lock:
            counts: dict[str, int] = {}
            for e in self.escalations:
                counts[e.status.value] = counts.get(e.status.value, 0) + 1
            total = len(self.escalations)
        return ComponentStatus(
            name="change-risk-responder",
            healthy=True,
            details={"escalations": total, "by_status": counts},
        )


def build_responder(
    repo_path: Path,
    config: EngineConfig,
    backend: VcsBackend | None = None,
    notifier: Notifier | None = log_integrity_notice,
) -> ChangeRiskResponder:
    """Wire a responder for a repository.

    Without an explicit backend, branches go through a bounded git backend
    when ``repo_path`` is a repository. High-risk changes are reported to
    ``notifier``.
    """
    if backend is None:
        git = GitBackend(repo_path, timeout=config.git_timeout)
        if git.is_repository():
            backend = BoundedBackend(git, max_workers=config.max_workers, timeout=config.git_timeout + 5)
        else:
            logger.warning("%s is not a git repository; branch escalations need manual review", repo_path)
    return ChangeRiskResponder(
        backend,
        escalation_log=EscalationLog(config.escalations_path(repo_path)),
        notifier=notifier,
        config=config,
    )
