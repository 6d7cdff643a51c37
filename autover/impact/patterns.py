"""
Pattern detection for version intent.

Two kinds of signal are collected:
- message keywords (major / minor / patch)
- structural shape of the change (new_agent / new_skill / core_change)

All matching tags accumulate. Confidence, however, is categorical and taken
from the first message tag present in the order major -> minor -> patch;
a commit mentioning both "breaking" and "fix" is a major with 0.9, never a
blend.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from ..config import EngineConfig
from ..models import FileChange, FileStatus, PatternAnalysis
from .classifier import in_directory, is_critical, normalize_path

MAJOR = "major"
MINOR = "minor"
PATCH = "patch"
NEW_AGENT = "new_agent"
NEW_SKILL = "new_skill"
CORE_CHANGE = "core_change"


_MANIFEST_NAMES = re.compile(r"(^|/)(package\.json|pyproject\.toml|requirements[^/]*\.txt)$")


def keyword_variants(keyword: str) -> set[str]:
    """Both the underscore and space-separated spellings of a keyword."""
    k = keyword.lower()
    return {k, k.replace("_", " "), k.replace(" ", "_")}


def matches_keywords(text: str, keywords: Iterable[str]) -> bool:
    lowered = (text or "").lower()
    return any(v in lowered for k in keywords for v in keyword_variants(k))


def detect_message_patterns(message: str | None, config: EngineConfig) -> list[str]:
    """Message keyword tags, in major -> minor -> patch order."""
    if not message:
        return []
    patterns: list[str] = []
    if matches_keywords(message, config.major_keywords):
        patterns.append(MAJOR)
    if matches_keywords(message, config.minor_keywords):
        patterns.append(MINOR)
    if matches_keywords(message, config.patch_keywords):
        patterns.append(PATCH)
    return patterns


def detect_structural_patterns(changes: Sequence[FileChange], config: EngineConfig) -> list[str]:
    patterns: list[str] = []
    if any(c.status == FileStatus.ADDED and in_directory(c.path, config.agents_dir) for c in changes):
        patterns.append(NEW_AGENT)
    if any(c.status == FileStatus.ADDED and in_directory(c.path, config.skills_dir) for c in changes):
        patterns.append(NEW_SKILL)
    if any(c.status == FileStatus.MODIFIED and is_critical(c.path, config) for c in changes):
        patterns.append(CORE_CHANGE)
    return patterns


def pattern_confidence(patterns: Sequence[str], config: EngineConfig) -> float:
    """Categorical confidence; first match wins."""
    if MAJOR in patterns:
        return config.major_confidence
    if MINOR in patterns:
        return config.minor_confidence
    if PATCH in patterns:
        return config.patch_confidence
    if patterns:
        return config.structural_confidence
    return config.baseline_confidence


def identify_triggers(message: str | None, changes: Sequence[FileChange]) -> list[str]:
    """Human-readable reasons recorded alongside a decision."""
    text = (message or "").lower()
    triggers: list[str] = []

    if "breaking" in text or "major" in text:
        triggers.append("breaking_change")
    if "feature" in text or "new" in text:
        triggers.append("new_feature")
    if "fix" in text or "bug" in text:
        triggers.append("bug_fix")

    if any(_MANIFEST_NAMES.search(normalize_path(c.path)) for c in changes):
        triggers.append("dependency_change")

    return triggers


def detect_patterns(
    message: str | None,
    changes: Sequence[FileChange],
    config: EngineConfig | None = None,
) -> PatternAnalysis:
    """Scan a commit message and its file changes for version-intent signals.

    A missing or empty message is not an error; it simply yields no message
    patterns.
    """
    cfg = config or EngineConfig()
    patterns = detect_message_patterns(message, cfg) + detect_structural_patterns(changes, cfg)

    return PatternAnalysis(
        patterns=tuple(patterns),
        confidence=pattern_confidence(patterns, cfg),
        triggers=tuple(identify_triggers(message, changes)),
    )
