"""Tests for configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from autover.config import CONFIG_FILENAME, EngineConfig, load_config
from autover.errors import ConfigurationError


def test_defaults_without_file(tmp_path: Path) -> None:
    assert load_config(tmp_path) == EngineConfig()


def test_defaults_are_the_calibrated_constants() -> None:
    cfg = EngineConfig()
    assert (cfg.high_risk_score, cfg.medium_risk_score) == (8, 5)
    assert (cfg.major_confidence, cfg.minor_confidence, cfg.patch_confidence) == (0.9, 0.7, 0.5)
    assert (cfg.structural_confidence, cfg.baseline_confidence) == (0.4, 0.3)
    assert (cfg.major_decision_threshold, cfg.minor_decision_threshold) == (0.8, 0.6)
    assert cfg.auto_apply_threshold == 0.6


def test_file_values_override_defaults(tmp_path: Path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(
        "auto-apply-threshold: 0.75\n"
        "critical_files:\n"
        "  - src/engine.py\n"
        "scan_count: 10\n"
        "scan_interval: 60\n",
        encoding="utf-8",
    )
    cfg = load_config(tmp_path)
    assert cfg.auto_apply_threshold == 0.75
    assert cfg.critical_files == ("src/engine.py",)
    assert cfg.scan_count == 10
    assert cfg.scan_interval == 60.0
    assert cfg.ledger_path(tmp_path) == tmp_path / ".autover" / "versioning-ledger.jsonl"


def test_unknown_keys_warn(tmp_path: Path, caplog) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("colour: blue\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="autover"):
        assert load_config(tmp_path) == EngineConfig()
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "content",
    [
        "auto_apply_threshold: 1.5\n",
        "auto_apply_threshold: high\n",
        "auto_apply: yes please\n",
        "scan_count: 2.5\n",
        "watch_dirs: 3\n",
        "- just\n- a list\n",
        "key: [unclosed\n",
    ],
)
def test_invalid_files_raise(tmp_path: Path, content: str) -> None:
    (tmp_path / CONFIG_FILENAME).write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path, tmp_path / "missing.yml")


def test_with_overrides_validates_threshold() -> None:
    cfg = EngineConfig().with_overrides(auto_apply_threshold=0.9, tag_prefix=None)
    assert cfg.auto_apply_threshold == 0.9
    assert cfg.tag_prefix == "v"
    with pytest.raises(ConfigurationError):
        EngineConfig().with_overrides(auto_apply_threshold=-0.1)
