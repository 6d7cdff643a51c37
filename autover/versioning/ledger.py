"""
Append-only versioning ledger.

Stores every version decision with its rationale in
.autover/versioning-ledger.jsonl. Key properties:
- append-only, never rewritten
- a commit hash carries at most one finalized (applied/manual) entry
- writes for a given commit hash are serialized
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from ..errors import AutoverError, ConflictError, TransientError
from ..models import (
    EntryStatus,
    LedgerEntry,
    Provenance,
    VersionDecision,
    VersionTier,
)
from .semver import infer_tier, parse_version

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------


class LedgerStore(ABC):
    """Storage behind the ledger. Only append and full read are needed."""

    @abstractmethod
    def append(self, entry: LedgerEntry) -> None:
        ...

    @abstractmethod
    def iter_entries(self) -> Iterator[LedgerEntry]:
        ...


class MemoryLedgerStore(LedgerStore):
    def __init__(self) -> None:
        self._entries: list[LedgerEntry] = []

    def append(self, entry: LedgerEntry) -> None:
        self._entries.append(entry)

    def iter_entries(self) -> Iterator[LedgerEntry]:
        yield from list(self._entries)


class JsonlLedgerStore(LedgerStore):
    """JSON Lines file, one entry per line, each line written in one call."""

    def __init__(self, path: Path):
        self.path = path
        self._write_lock = threading.Lock()

    def append(self, entry: LedgerEntry) -> None:
        line = json.dumps(entry.to_dict(), separators=(",", ":")) + "\n"
        with self._write_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)

    def iter_entries(self) -> Iterator[LedgerEntry]:
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield LedgerEntry.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning("Skipping malformed ledger line %d in %s: %s", lineno, self.path, e)


# -----------------------------------------------------------------------------
# Per-key serialization
# -----------------------------------------------------------------------------


class KeyedLock:
    """One re-entrant lock per key, dropped once no thread holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.RLock, int]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.RLock()
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


# -----------------------------------------------------------------------------
# Ledger
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordResult:
    """Outcome of a ledger write. Never raised, always returned."""

    status: str  # "recorded" | "duplicate" | "conflict" | "failed"
    entry: LedgerEntry | None = None
    error: AutoverError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "recorded"


class VersioningLedger:
    def __init__(self, store: LedgerStore):
        self.store = store
        self._locks = KeyedLock()

    @contextmanager
    def locked(self, commit_hash: str) -> Iterator[None]:
        """Hold the write lock for one commit hash across read-decide-write."""
        with self._locks.hold(commit_hash):
            yield

    # --- Reads ---

    def history(self) -> list[LedgerEntry]:
        """All entries in insertion order."""
        return list(self.store.iter_entries())

    def entries_for(self, commit_hash: str) -> list[LedgerEntry]:
        return [e for e in self.store.iter_entries() if e.commit_hash == commit_hash]

    def latest(self, commit_hash: str) -> LedgerEntry | None:
        entries = self.entries_for(commit_hash)
        return entries[-1] if entries else None

    def finalized(self, commit_hash: str) -> LedgerEntry | None:
        for e in self.store.iter_entries():
            if e.commit_hash == commit_hash and e.finalized:
                return e
        return None

    def pending_reviews(self) -> list[LedgerEntry]:
        """Latest entry per hash that is still awaiting review."""
        latest: dict[str, LedgerEntry] = {}
        finalized: set[str] = set()
        for e in self.store.iter_entries():
            latest[e.commit_hash] = e
            if e.finalized:
                finalized.add(e.commit_hash)
        return [
            e for h, e in latest.items()
            if h not in finalized and e.status == EntryStatus.PENDING_REVIEW
        ]

    # --- Writes ---

    def record(self, entry: LedgerEntry) -> RecordResult:
        """Append an entry unless it would break idempotency.

        A second finalized entry for the same hash is refused with a conflict.
        A pending entry identical to the latest pending one is a duplicate.
        """
        commit_hash = entry.commit_hash
        with self._locks.hold(commit_hash):
            existing = self.finalized(commit_hash)
            if existing is not None:
                err = ConflictError(
                    f"Commit {commit_hash[:12]} already finalized as {existing.decision.new_version}",
                    {"commit_hash": commit_hash, "status": existing.status.value},
                )
                logger.warning("Ledger refused entry: %s", err.message)
                return RecordResult("conflict", existing, err)

            if entry.status == EntryStatus.PENDING_REVIEW:
                last = self.latest(commit_hash)
                if (
                    last is not None
                    and last.status == EntryStatus.PENDING_REVIEW
                    and last.decision == entry.decision
                ):
                    logger.info("Commit %s already pending review, skipping", commit_hash[:12])
                    return RecordResult("duplicate", last)

            try:
                self.store.append(entry)
            except OSError as e:
                err = TransientError(f"Could not write ledger entry: {e}", {"commit_hash": commit_hash})
                logger.error("%s", err)
                return RecordResult("failed", None, err)

        logger.info(
            "Recorded %s -> %s (%s)",
            commit_hash[:12],
            entry.decision.new_version,
            entry.status.value,
        )
        return RecordResult("recorded", entry)

    def manual_override(
        self,
        commit_hash: str,
        version: str,
        current_version: str,
        timestamp: str | None = None,
    ) -> RecordResult:
        """Record a human-chosen version, bypassing the decision engine."""
        try:
            new_version = ".".join(str(p) for p in parse_version(version))
        except AutoverError as e:
            logger.error("Manual override for %s refused: %s", commit_hash[:12], e)
            return RecordResult("failed", None, e)
        try:
            tier = infer_tier(current_version, new_version)
        except AutoverError:
            tier = VersionTier.PATCH

        decision = VersionDecision(
            commit_hash=commit_hash,
            current_version=current_version,
            tier=tier,
            new_version=new_version,
            confidence=1.0,
            timestamp=timestamp or utc_now(),
            provenance=Provenance.MANUAL,
        )
        entry = LedgerEntry(
            decision=decision,
            status=EntryStatus.MANUAL,
            recorded_at=utc_now(),
            triggers=("manual_override",),
        )
        return self.record(entry)

    # --- Summary ---

    def statistics(self) -> dict:
        entries = self.history()
        if not entries:
            return {
                "total_entries": 0,
                "by_tier": {t.value: 0 for t in VersionTier},
                "by_status": {s.value: 0 for s in EntryStatus},
                "average_confidence": 0.0,
                "last_version": None,
                "pending_reviews": 0,
            }

        by_tier = {t.value: 0 for t in VersionTier}
        by_status = {s.value: 0 for s in EntryStatus}
        for e in entries:
            by_tier[e.decision.tier.value] += 1
            by_status[e.status.value] += 1

        finalized = [e for e in entries if e.finalized]

        return {
            "total_entries": len(entries),
            "by_tier": by_tier,
            "by_status": by_status,
            "average_confidence": sum(e.decision.confidence for e in entries) / len(entries),
            "last_version": finalized[-1].decision.new_version if finalized else None,
            "pending_reviews": len(self.pending_reviews()),
            "time_range": {
                "earliest": entries[0].recorded_at,
                "latest": entries[-1].recorded_at,
            },
        }
