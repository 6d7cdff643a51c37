"""
Version decision engine and confidence estimator.

Decision rule, first satisfied branch wins:

1. major  if "major" was detected, or impact is high and pattern
          confidence >= 0.8
2. minor  if "minor" was detected, or impact is medium and pattern
          confidence >= 0.6
3. patch  otherwise

Overall confidence = (max_impact / 10 + pattern confidence) / 2.
"""

from __future__ import annotations

from ..config import EngineConfig
from ..models import (
    CommitImpactAnalysis,
    PatternAnalysis,
    Provenance,
    RiskLevel,
    VersionDecision,
    VersionTier,
)
from ..impact.classifier import MAX_SCORE
from ..impact.patterns import MAJOR, MINOR
from .semver import calculate_new_version


def decide_tier(
    impact: CommitImpactAnalysis,
    patterns: PatternAnalysis,
    config: EngineConfig | None = None,
) -> VersionTier:
    cfg = config or EngineConfig()

    if patterns.has(MAJOR) or (
        impact.impact_level == RiskLevel.HIGH
        and patterns.confidence >= cfg.major_decision_threshold
    ):
        return VersionTier.MAJOR

    if patterns.has(MINOR) or (
        impact.impact_level == RiskLevel.MEDIUM
        and patterns.confidence >= cfg.minor_decision_threshold
    ):
        return VersionTier.MINOR

    return VersionTier.PATCH


def estimate_confidence(impact: CommitImpactAnalysis, patterns: PatternAnalysis) -> float:
    value = (impact.max_impact / MAX_SCORE + patterns.confidence) / 2
    return max(0.0, min(1.0, value))


def should_auto_apply(confidence: float, config: EngineConfig | None = None) -> bool:
    cfg = config or EngineConfig()
    return cfg.auto_apply and confidence >= cfg.auto_apply_threshold


def decide(
    impact: CommitImpactAnalysis,
    patterns: PatternAnalysis,
    current_version: str,
    timestamp: str,
    config: EngineConfig | None = None,
) -> VersionDecision:
    """Build the full decision for a commit.

    Provenance is ``auto`` when the confidence clears the gate and
    ``manual-review-pending`` otherwise; the decision is computed either way.
    """
    cfg = config or EngineConfig()
    tier = decide_tier(impact, patterns, cfg)
    confidence = estimate_confidence(impact, patterns)
    provenance = Provenance.AUTO if should_auto_apply(confidence, cfg) else Provenance.PENDING_REVIEW

    return VersionDecision(
        commit_hash=impact.commit_hash,
        current_version=current_version,
        tier=tier,
        new_version=calculate_new_version(current_version, tier),
        confidence=round(confidence, 4),
        timestamp=timestamp,
        provenance=provenance,
    )
