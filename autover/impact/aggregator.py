"""Commit impact aggregation: many file impacts -> one impact level."""

from __future__ import annotations

from typing import Sequence

from ..config import EngineConfig
from ..models import CommitImpactAnalysis, FileImpact, RiskLevel
from .classifier import bucket_risk


def aggregate_impacts(
    commit_hash: str,
    impacts: Sequence[FileImpact],
    config: EngineConfig | None = None,
) -> CommitImpactAnalysis:
    """Combine per-file impacts for a commit.

    An empty commit (e.g. an empty merge) aggregates to max=0, avg=0, low.
    """
    scores = [i.score for i in impacts]
    max_impact = max(scores) if scores else 0
    avg_impact = sum(scores) / len(scores) if scores else 0.0

    return CommitImpactAnalysis(
        commit_hash=commit_hash,
        max_impact=max_impact,
        avg_impact=avg_impact,
        impact_level=bucket_risk(max_impact, config),
        affected_systems=frozenset(i.subsystem for i in impacts),
        risk_factors=tuple(i.file for i in impacts if i.risk_level == RiskLevel.HIGH),
        change_count=len(impacts),
    )
