"""
Versioning for analysed commits.

Components:
- semver: version parsing and increment arithmetic
- decision: tier rule and confidence estimate
- manifest: the project manifest's current version
- ledger: append-only, idempotent record of decisions
"""

from .decision import decide, decide_tier, estimate_confidence
from .ledger import JsonlLedgerStore, LedgerStore, MemoryLedgerStore, RecordResult, VersioningLedger
from .manifest import ManifestStore
from .semver import calculate_new_version, parse_version

__all__ = [
    "calculate_new_version",
    "decide",
    "decide_tier",
    "estimate_confidence",
    "JsonlLedgerStore",
    "LedgerStore",
    "ManifestStore",
    "MemoryLedgerStore",
    "parse_version",
    "RecordResult",
    "VersioningLedger",
]
