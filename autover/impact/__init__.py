"""
Change-impact analysis.

Components:
- classifier: one file change -> FileImpact (score, subsystem, risk level)
- aggregator: a commit's FileImpacts -> CommitImpactAnalysis
- patterns: commit message + change shape -> PatternAnalysis

All three are pure functions with no VCS dependency.
"""

from .aggregator import aggregate_impacts
from .classifier import bucket_risk, classify_changes, classify_file
from .patterns import detect_patterns

__all__ = [
    "aggregate_impacts",
    "bucket_risk",
    "classify_changes",
    "classify_file",
    "detect_patterns",
]
