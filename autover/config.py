"""
Engine configuration.

Every heuristic threshold is a named field so it can be tuned from
``.autover.yml`` at the repository root. The defaults are the calibrated
values the engine has always used; they are knobs, not derived truth.

Example ``.autover.yml``::

    auto_apply_threshold: 0.7
    tag_prefix: v
    manifest: package.json
    critical_files:
      - package.json
      - src/engine.py
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".autover.yml"


@dataclass(frozen=True)
class EngineConfig:
    # Risk buckets (score -> low/medium/high)
    high_risk_score: int = 8
    medium_risk_score: int = 5

    # Categorical pattern confidences, checked major -> minor -> patch
    major_confidence: float = 0.9
    minor_confidence: float = 0.7
    patch_confidence: float = 0.5
    structural_confidence: float = 0.4
    baseline_confidence: float = 0.3

    # Decision rule thresholds on pattern confidence
    major_decision_threshold: float = 0.8
    minor_decision_threshold: float = 0.6

    # Gate
    auto_apply: bool = True
    auto_apply_threshold: float = 0.6

    # Commit message keywords (case-insensitive substring)
    major_keywords: tuple[str, ...] = ("breaking", "major", "architectural")
    minor_keywords: tuple[str, ...] = ("feature", "enhancement", "improvement", "new")
    patch_keywords: tuple[str, ...] = ("fix", "bug", "patch", "chore")

    # Path taxonomy
    critical_files: tuple[str, ...] = (
        "package.json",
        "pyproject.toml",
        "distributed-startup.js",
        "autonomous-evolution-engine.js",
        "rules/00-ecp-mode.md",
    )
    rules_dir: str = "rules"
    agents_dir: str = "agents"
    skills_dir: str = "skills"

    # Persistence
    manifest: str = "package.json"
    state_dir: str = ".autover"
    tag_prefix: str = "v"

    # Scheduling and VCS calls (seconds)
    scan_interval: float = 300.0
    health_interval: float = 60.0
    scan_count: int = 5
    git_timeout: float = 30.0
    max_workers: int = 2

    # Watcher
    watch_dirs: tuple[str, ...] = ("skills", "agents", "rules", "docs")

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        """Return a copy with non-None overrides applied."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        if "auto_apply_threshold" in clean:
            validate_threshold(clean["auto_apply_threshold"])
        return replace(self, **clean) if clean else self

    def ledger_path(self, repo_path: Path) -> Path:
        return repo_path / self.state_dir / "versioning-ledger.jsonl"

    def escalations_path(self, repo_path: Path) -> Path:
        return repo_path / self.state_dir / "escalations.jsonl"

    def manifest_path(self, repo_path: Path) -> Path:
        return repo_path / self.manifest


def validate_threshold(value: Any) -> float:
    """Check that a confidence threshold lies in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Threshold must be a number, got {value!r}")
    if not 0 <= value <= 1:
        raise ConfigurationError(f"Invalid threshold: {value}. Must be between 0 and 1.")
    return float(value)


def _coerce(name: str, default: Any, value: Any) -> Any:
    """Coerce a YAML value to the type of the field default."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigurationError(f"{name} must be true or false")
        return value
    if isinstance(default, tuple):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"{name} must be a list of strings")
        return tuple(value)
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"{name} must be a number")
        return float(value)
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"{name} must be an integer")
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be a string")
    return value


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """Build a config from a plain mapping; unknown keys are ignored."""
    base = EngineConfig()
    known = {f.name: getattr(base, f.name) for f in fields(EngineConfig)}
    values: dict[str, Any] = {}

    for key, raw in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        values[name] = _coerce(name, known[name], raw)

    if "auto_apply_threshold" in values:
        validate_threshold(values["auto_apply_threshold"])

    return replace(base, **values)


def load_config(repo_path: Path, config_path: Path | None = None) -> EngineConfig:
    """
    Load configuration for a repository.

    Args:
        repo_path: Repository root; ``.autover.yml`` is looked up here
        config_path: Explicit config file (must exist if given)

    Returns:
        EngineConfig with file values applied over the defaults
    """
    path = config_path or (repo_path / CONFIG_FILENAME)
    if not path.exists():
        if config_path is not None:
            raise ConfigurationError(f"Config file not found: {path}")
        return EngineConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")

    logger.debug("Loaded config from %s", path)
    return config_from_dict(data)
