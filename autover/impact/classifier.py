"""
File impact classifier.

Maps one changed path to a risk score and subsystem tag. The classification
table is evaluated top-down and the first match wins:

    critical file   -> 10, core
    rules directory ->  8, rules
    agents directory->  6, agents
    skills directory->  5, skills
    markdown        ->  2, docs
    anything else   ->  3, general

Change status (added/modified/deleted) never alters the score.
"""

from __future__ import annotations

from ..config import EngineConfig
from ..models import FileChange, FileImpact, RiskLevel

CRITICAL_SCORE = 10
RULES_SCORE = 8
AGENTS_SCORE = 6
SKILLS_SCORE = 5
DOCS_SCORE = 2
DEFAULT_SCORE = 3

MAX_SCORE = 10


def normalize_path(path: str) -> str:
    """Forward slashes, no leading './'."""
    p = (path or "").replace("\\", "/").strip()
    while p.startswith("./"):
        p = p[2:]
    return p


def in_directory(path: str, directory: str) -> bool:
    """True if any directory segment of ``path`` equals ``directory``."""
    segments = normalize_path(path).split("/")[:-1]
    return directory in segments


def is_critical(path: str, config: EngineConfig) -> bool:
    p = normalize_path(path)
    return any(critical in p for critical in config.critical_files)


def bucket_risk(score: float, config: EngineConfig | None = None) -> RiskLevel:
    """Bucket a score into a risk level using the 8/5 thresholds."""
    cfg = config or EngineConfig()
    if score >= cfg.high_risk_score:
        return RiskLevel.HIGH
    if score >= cfg.medium_risk_score:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _score_path(path: str, config: EngineConfig) -> tuple[int, str]:
    if is_critical(path, config):
        return (CRITICAL_SCORE, "core")
    if in_directory(path, config.rules_dir):
        return (RULES_SCORE, "rules")
    if in_directory(path, config.agents_dir):
        return (AGENTS_SCORE, "agents")
    if in_directory(path, config.skills_dir):
        return (SKILLS_SCORE, "skills")
    if normalize_path(path).lower().endswith(".md"):
        return (DOCS_SCORE, "docs")
    return (DEFAULT_SCORE, "general")


def classify_file(change: FileChange, config: EngineConfig | None = None) -> FileImpact:
    """Classify one file change. Pure; no I/O."""
    cfg = config or EngineConfig()
    score, subsystem = _score_path(change.path, cfg)
    score = max(0, min(MAX_SCORE, score))
    return FileImpact(
        file=normalize_path(change.path),
        score=score,
        subsystem=subsystem,
        risk_level=bucket_risk(score, cfg),
    )


def classify_changes(
    changes: list[FileChange] | tuple[FileChange, ...],
    config: EngineConfig | None = None,
) -> list[FileImpact]:
    return [classify_file(c, config) for c in changes]
