"""
Canonical records for change-impact analysis and versioning decisions.

Transient records (recomputed on every analysis):
- FileChange, FileImpact, CommitImpactAnalysis, PatternAnalysis

Durable records (owned by the versioning ledger):
- VersionDecision, LedgerEntry

Per-file escalation output:
- TestEscalation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FileStatus(str, Enum):
    """How a file changed within a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"

    @classmethod
    def from_git(cls, letter: str) -> "FileStatus":
        """Map a git name-status letter (A, M, D, T, R100, ...) to a status."""
        code = (letter or "").strip()[:1].upper()
        if code == "A":
            return cls.ADDED
        if code == "D":
            return cls.DELETED
        return cls.MODIFIED


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VersionTier(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class Provenance(str, Enum):
    """Where a version decision came from."""

    AUTO = "auto"
    MANUAL = "manual"
    PENDING_REVIEW = "manual-review-pending"


class EntryStatus(str, Enum):
    """Outcome recorded in the ledger for a decision.

    APPLIED and MANUAL are finalized: a commit hash carries at most one of them.
    """

    APPLIED = "applied"
    MANUAL = "manual"
    PENDING_REVIEW = "manual-review-pending"
    FAILED = "failed"

    @property
    def finalized(self) -> bool:
        return self in (EntryStatus.APPLIED, EntryStatus.MANUAL)


class EscalationStatus(str, Enum):
    CREATED = "created"  # branch exists, flag not stored
    FLAGGED = "flagged"
    LOGGED = "logged"
    MANUAL_REVIEW = "manual-review"


@dataclass(frozen=True)
class FileChange:
    """One file touched by one commit (or one watcher notification)."""

    path: str
    status: FileStatus = FileStatus.MODIFIED
    lines_added: int = 0
    lines_removed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "status": self.status.value,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileChange":
        return cls(
            path=data["path"],
            status=FileStatus(data.get("status", "modified")),
            lines_added=int(data.get("lines_added", 0)),
            lines_removed=int(data.get("lines_removed", 0)),
        )


@dataclass(frozen=True)
class FileImpact:
    """Risk score and subsystem tag for one changed file."""

    file: str
    score: int
    subsystem: str
    risk_level: RiskLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "score": self.score,
            "subsystem": self.subsystem,
            "risk_level": self.risk_level.value,
        }


@dataclass(frozen=True)
class CommitRecord:
    """A commit as read from the VCS backend."""

    hash: str
    author: str = ""
    message: str = ""
    timestamp: str = ""  # ISO 8601, as reported by the backend
    file_changes: tuple[FileChange, ...] = field(default_factory=tuple)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


@dataclass(frozen=True)
class CommitImpactAnalysis:
    """Aggregated impact of all files in one commit."""

    commit_hash: str
    max_impact: int
    avg_impact: float
    impact_level: RiskLevel
    affected_systems: frozenset[str] = field(default_factory=frozenset)
    risk_factors: tuple[str, ...] = field(default_factory=tuple)
    change_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "commit_hash": self.commit_hash,
            "max_impact": self.max_impact,
            "avg_impact": self.avg_impact,
            "impact_level": self.impact_level.value,
            "affected_systems": sorted(self.affected_systems),
            "risk_factors": list(self.risk_factors),
            "change_count": self.change_count,
        }


@dataclass(frozen=True)
class PatternAnalysis:
    """Version-intent signals detected in a commit."""

    patterns: tuple[str, ...] = field(default_factory=tuple)
    confidence: float = 0.0
    triggers: tuple[str, ...] = field(default_factory=tuple)

    def has(self, pattern: str) -> bool:
        return pattern in self.patterns

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": list(self.patterns),
            "confidence": self.confidence,
            "triggers": list(self.triggers),
        }


@dataclass(frozen=True)
class VersionDecision:
    """A versioning decision for one commit. Immutable once persisted."""

    commit_hash: str
    current_version: str
    tier: VersionTier
    new_version: str
    confidence: float
    timestamp: str
    provenance: Provenance

    def to_dict(self) -> dict[str, Any]:
        return {
            "commit_hash": self.commit_hash,
            "current_version": self.current_version,
            "tier": self.tier.value,
            "new_version": self.new_version,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "provenance": self.provenance.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VersionDecision":
        return cls(
            commit_hash=data["commit_hash"],
            current_version=data["current_version"],
            tier=VersionTier(data["tier"]),
            new_version=data["new_version"],
            confidence=float(data["confidence"]),
            timestamp=data.get("timestamp", ""),
            provenance=Provenance(data["provenance"]),
        )


@dataclass(frozen=True)
class LedgerEntry:
    """A persisted decision plus the rationale that produced it."""

    decision: VersionDecision
    status: EntryStatus
    recorded_at: str
    impact_level: RiskLevel | None = None
    patterns: tuple[str, ...] = field(default_factory=tuple)
    triggers: tuple[str, ...] = field(default_factory=tuple)
    error: str | None = None
    error_category: str | None = None

    @property
    def commit_hash(self) -> str:
        return self.decision.commit_hash

    @property
    def finalized(self) -> bool:
        return self.status.finalized

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "decision": self.decision.to_dict(),
            "status": self.status.value,
            "recorded_at": self.recorded_at,
            "impact_level": self.impact_level.value if self.impact_level else None,
            "patterns": list(self.patterns),
            "triggers": list(self.triggers),
        }
        if self.error:
            d["error"] = self.error
        if self.error_category:
            d["error_category"] = self.error_category
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerEntry":
        level = data.get("impact_level")
        return cls(
            decision=VersionDecision.from_dict(data["decision"]),
            status=EntryStatus(data["status"]),
            recorded_at=data.get("recorded_at", ""),
            impact_level=RiskLevel(level) if level else None,
            patterns=tuple(data.get("patterns", [])),
            triggers=tuple(data.get("triggers", [])),
            error=data.get("error"),
            error_category=data.get("error_category"),
        )


@dataclass(frozen=True)
class TestEscalation:
    """Testing response produced for one file impact."""

    __test__ = False  # not a pytest test class

    file: str
    risk_level: str
    branch_ref: str | None
    status: EscalationStatus
    created_at: str
    notified: bool = False
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "risk_level": self.risk_level,
            "branch_ref": self.branch_ref,
            "status": self.status.value,
            "created_at": self.created_at,
            "notified": self.notified,
            "reason": self.reason,
        }
