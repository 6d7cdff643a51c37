"""
Versioning engine: the operation surface over the ledger and VCS backend.

analyze_commit(hash):
    1. disabled engine              -> "disabled"
    2. finalized ledger entry       -> "duplicate" (stored decision returned)
    3. commit + file changes read through the backend
    4. version tag already present  -> "skipped"
    5. classify -> aggregate -> detect -> decide -> estimate
    6. gate: confident enough -> tag + manifest + "applied" entry
             otherwise        -> "manual-review-pending" entry, no tag

Every operation returns an OperationResult; errors are classified and
carried on the result rather than raised.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import EngineConfig
from .errors import AutoverError, ConfigurationError, ErrorCategory
from .impact.aggregator import aggregate_impacts
from .impact.classifier import classify_changes
from .impact.patterns import detect_patterns
from .models import (
    CommitImpactAnalysis,
    EntryStatus,
    FileImpact,
    LedgerEntry,
    PatternAnalysis,
    Provenance,
    VersionDecision,
)
from .status import ComponentStatus, StatusReporting
from .vcs.backend import VcsBackend
from .vcs.executor import BoundedBackend
from .vcs.git import GitBackend
from .versioning.decision import decide
from .versioning.ledger import JsonlLedgerStore, VersioningLedger, utc_now
from .versioning.manifest import ManifestStore
from .versioning.semver import parse_version

logger = logging.getLogger(__name__)

# OperationResult.status values
APPLIED = "applied"
PENDING_REVIEW = "pending-review"
DUPLICATE = "duplicate"
SKIPPED = "skipped"
FAILED = "failed"
DISABLED = "disabled"
RECORDED = "recorded"
BLOCKED = "blocked"


@dataclass
class OperationResult:
    """Result of an engine operation."""

    status: str
    commit_hash: str | None = None
    decision: VersionDecision | None = None
    impact: CommitImpactAnalysis | None = None
    patterns: PatternAnalysis | None = None
    file_impacts: list[FileImpact] = field(default_factory=list)
    error: AutoverError | None = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status in (APPLIED, PENDING_REVIEW, DUPLICATE, SKIPPED, RECORDED)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "status": self.status,
            "commit_hash": self.commit_hash,
            "message": self.message,
        }
        if self.decision is not None:
            d["decision"] = self.decision.to_dict()
        if self.impact is not None:
            d["impact"] = self.impact.to_dict()
        if self.patterns is not None:
            d["patterns"] = self.patterns.to_dict()
        if self.file_impacts:
            d["file_impacts"] = [i.to_dict() for i in self.file_impacts]
        if self.error is not None:
            d["error"] = self.error.to_dict()
        return d


def _retryable(entry: LedgerEntry) -> bool:
    """Failed entries without a category predate categorisation and are retried."""
    return entry.error_category in (None, ErrorCategory.TRANSIENT.value)


class VersioningEngine(StatusReporting):
    def __init__(
        self,
        backend: VcsBackend,
        ledger: VersioningLedger,
        manifest: ManifestStore,
        config: EngineConfig | None = None,
    ):
        self.backend = backend
        self.ledger = ledger
        self.manifest = manifest
        self.config = config or EngineConfig()

        # Serializes read-current-version -> tag -> manifest write
        self._version_lock = threading.Lock()
        self.last_error: AutoverError | None = None

        self.enabled = self._check_backend()

    def _check_backend(self) -> bool:
        try:
            available = self.backend.is_repository()
        except AutoverError as e:
            logger.error("Versioning disabled: %s", e)
            self.last_error = e
            return False
        if not available:
            logger.error("Versioning disabled: backend is not a usable repository")
            self.last_error = ConfigurationError("Not a repository")
            return False
        return True

    def _disabled(self, commit_hash: str | None = None) -> OperationResult:
        return OperationResult(
            status=DISABLED,
            commit_hash=commit_hash,
            error=self.last_error,
            message="versioning disabled (no repository)",
        )

    @property
    def current_version(self) -> str:
        return self.manifest.read_version()

    def set_auto_apply_threshold(self, threshold: float) -> None:
        self.config = self.config.with_overrides(auto_apply_threshold=threshold)
        logger.info("Auto-apply threshold set to %s", threshold)

    def set_auto_apply(self, enabled: bool) -> None:
        self.config = self.config.with_overrides(auto_apply=enabled)
        logger.info("Auto-apply %s", "enabled" if enabled else "disabled")

    # --- Operations ---

    def analyze_commit(self, commit_hash: str) -> OperationResult:
        """Analyse one commit and apply or defer its version."""
        if not self.enabled:
            return self._disabled(commit_hash)

        existing = self.ledger.finalized(commit_hash)
        if existing is not None:
            return OperationResult(
                status=DUPLICATE,
                commit_hash=commit_hash,
                decision=existing.decision,
                message=f"already versioned as {existing.decision.new_version}",
            )

        try:
            commit = self.backend.get_commit(commit_hash)
        except AutoverError as e:
            logger.error("Could not read commit %s: %s", commit_hash, e)
            return OperationResult(status=FAILED, commit_hash=commit_hash, error=e, message=e.message)

        full_hash = commit.hash
        with self.ledger.locked(full_hash):
            existing = self.ledger.finalized(full_hash)
            if existing is not None:
                logger.info("Commit %s already versioned as %s", commit.short_hash, existing.decision.new_version)
                return OperationResult(
                    status=DUPLICATE,
                    commit_hash=full_hash,
                    decision=existing.decision,
                    message=f"already versioned as {existing.decision.new_version}",
                )

            try:
                tags = self.backend.tags_pointing_at(full_hash)
            except AutoverError as e:
                return OperationResult(status=FAILED, commit_hash=full_hash, error=e, message=e.message)

            version_tags = [t for t in tags if t.startswith(self.config.tag_prefix)]
            if version_tags and not self.ledger.entries_for(full_hash):
                logger.info("Commit %s already tagged %s", commit.short_hash, ", ".join(version_tags))
                return OperationResult(
                    status=SKIPPED,
                    commit_hash=full_hash,
                    message=f"already tagged {', '.join(version_tags)}",
                )

            latest = self.ledger.latest(full_hash)
            if latest is not None and latest.status == EntryStatus.FAILED and not _retryable(latest):
                logger.info(
                    "Commit %s last failed with a %s error; not retrying",
                    commit.short_hash,
                    latest.error_category,
                )
                return OperationResult(
                    status=BLOCKED,
                    commit_hash=full_hash,
                    decision=latest.decision,
                    message=f"previous attempt failed: {latest.error}; needs intervention",
                )

            impacts = classify_changes(commit.file_changes, self.config)
            impact = aggregate_impacts(full_hash, impacts, self.config)
            patterns = detect_patterns(commit.message, commit.file_changes, self.config)

            with self._version_lock:
                try:
                    decision = decide(impact, patterns, self.current_version, commit.timestamp, self.config)
                except AutoverError as e:
                    return OperationResult(status=FAILED, commit_hash=full_hash, error=e, message=e.message)

                result = OperationResult(
                    status=PENDING_REVIEW,
                    commit_hash=full_hash,
                    decision=decision,
                    impact=impact,
                    patterns=patterns,
                    file_impacts=impacts,
                )

                if decision.provenance == Provenance.AUTO:
                    return self._apply(result, decision)
                return self._defer(result, decision)

    def _entry(
        self,
        result: OperationResult,
        decision: VersionDecision,
        status: EntryStatus,
        error: AutoverError | None = None,
    ) -> LedgerEntry:
        return LedgerEntry(
            decision=decision,
            status=status,
            recorded_at=utc_now(),
            impact_level=result.impact.impact_level if result.impact else None,
            patterns=result.patterns.patterns if result.patterns else (),
            triggers=result.patterns.triggers if result.patterns else (),
            error=str(error) if error else None,
            error_category=error.category.value if error else None,
        )

    def _defer(self, result: OperationResult, decision: VersionDecision) -> OperationResult:
        recorded = self.ledger.record(self._entry(result, decision, EntryStatus.PENDING_REVIEW))
        if recorded.status == "duplicate":
            result.status = DUPLICATE
            result.message = "already pending review"
        elif not recorded.ok:
            result.status = FAILED
            result.error = recorded.error
        else:
            result.message = (
                f"confidence {decision.confidence:.2f} below "
                f"{self.config.auto_apply_threshold:.2f}; manual review required"
            )
            logger.info("Commit %s -> v%s deferred: %s", decision.commit_hash[:12], decision.new_version, result.message)
        return result

    def _apply(self, result: OperationResult, decision: VersionDecision) -> OperationResult:
        tag = f"{self.config.tag_prefix}{decision.new_version}"

        try:
            self.backend.create_tag(tag, f"Autonomous version: {decision.new_version}", decision.commit_hash)
        except AutoverError as e:
            logger.error("Tagging %s as %s failed: %s", decision.commit_hash[:12], tag, e)
            self.ledger.record(self._entry(result, decision, EntryStatus.FAILED, error=e))
            result.status = FAILED
            result.error = e
            result.message = e.message
            return result

        try:
            self.manifest.write_version(decision.new_version)
        except AutoverError as e:
            # The tag exists; the manifest can be fixed by hand
            logger.error("Tag %s written but manifest update failed: %s", tag, e)
            result.error = e

        recorded = self.ledger.record(self._entry(result, decision, EntryStatus.APPLIED))
        if not recorded.ok:
            result.status = FAILED
            result.error = recorded.error
            return result

        result.status = APPLIED
        result.message = f"tagged {tag}"
        logger.info(
            "Commit %s -> %s (confidence %.2f)",
            decision.commit_hash[:12],
            tag,
            decision.confidence,
        )
        return result

    def scan_recent(self, count: int | None = None) -> list[OperationResult]:
        """Analyse the most recent commits, oldest first."""
        if not self.enabled:
            return [self._disabled()]

        n = count or self.config.scan_count
        try:
            commits = self.backend.list_recent_commits(n)
        except AutoverError as e:
            logger.error("Could not list recent commits: %s", e)
            return [OperationResult(status=FAILED, error=e, message=e.message)]

        results = []
        for commit in reversed(commits):
            results.append(self.analyze_commit(commit.hash))
        return results

    def manual_override(self, commit_hash: str, version: str) -> OperationResult:
        """Tag a commit with a human-chosen version, bypassing the decision rule."""
        if not self.enabled:
            return self._disabled(commit_hash)

        try:
            commit = self.backend.get_commit(commit_hash)
        except AutoverError as e:
            return OperationResult(status=FAILED, commit_hash=commit_hash, error=e, message=e.message)

        with self.ledger.locked(commit.hash), self._version_lock:
            existing = self.ledger.finalized(commit.hash)
            if existing is not None:
                return OperationResult(
                    status=DUPLICATE,
                    commit_hash=commit.hash,
                    decision=existing.decision,
                    message=f"already versioned as {existing.decision.new_version}",
                )

            normalized = version.strip().lstrip("v")
            tag = f"{self.config.tag_prefix}{normalized}"
            current = self.current_version
            try:
                # Validate before touching the repository
                parse_version(normalized)
                self.backend.create_tag(tag, f"Manual version: {normalized}", commit.hash)
            except AutoverError as e:
                logger.error("Manual override for %s failed: %s", commit.short_hash, e)
                return OperationResult(status=FAILED, commit_hash=commit.hash, error=e, message=e.message)

            recorded = self.ledger.manual_override(commit.hash, normalized, current, commit.timestamp or None)
            if not recorded.ok:
                return OperationResult(
                    status=FAILED,
                    commit_hash=commit.hash,
                    error=recorded.error,
                    message=recorded.error.message if recorded.error else "",
                )

            try:
                self.manifest.write_version(normalized)
            except AutoverError as e:
                logger.error("Manifest update failed after manual override: %s", e)

        logger.info("Manual override: %s -> %s", commit.short_hash, tag)
        return OperationResult(
            status=RECORDED,
            commit_hash=commit.hash,
            decision=recorded.entry.decision if recorded.entry else None,
            message=f"tagged {tag}",
        )

    def get_history(self) -> list[LedgerEntry]:
        return self.ledger.history()

    def get_statistics(self) -> dict[str, Any]:
        stats = self.ledger.statistics()
        stats["current_version"] = self.current_version
        stats["enabled"] = self.enabled
        stats["auto_apply"] = self.config.auto_apply
        stats["auto_apply_threshold"] = self.config.auto_apply_threshold
        return stats

    def get_status(self) -> ComponentStatus:
        details: dict[str, Any] = {
            "enabled": self.enabled,
            "auto_apply": self.config.auto_apply,
            "threshold": self.config.auto_apply_threshold,
        }
        if self.enabled:
            details["current_version"] = self.current_version
        if self.last_error is not None:
            details["last_error"] = str(self.last_error)
        return ComponentStatus(name="versioning-engine", healthy=self.enabled, details=details)


def build_engine(repo_path: Path, config: EngineConfig | None = None) -> VersioningEngine:
    """Wire the git backend, JSONL ledger and manifest for a repository."""
    cfg = config or EngineConfig()
    repo = Path(repo_path).resolve()
    backend = BoundedBackend(
        GitBackend(repo, timeout=cfg.git_timeout),
        max_workers=cfg.max_workers,
        timeout=cfg.git_timeout + 5,
    )
    ledger = VersioningLedger(JsonlLedgerStore(cfg.ledger_path(repo)))
    manifest = ManifestStore(cfg.manifest_path(repo))
    return VersioningEngine(backend, ledger, manifest, cfg)
