"""Tests for the autover CLI."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from autover.cli import cli
from autover.commands.versioning_cmd import run_history, run_stats

from conftest import modified


def test_classify_json(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["--repo", str(tmp_path), "classify", "rules/style.md", "docs/a.md", "--json"],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert [f["score"] for f in data["files"]] == [8, 2]
    assert data["summary"]["impact_level"] == "high"
    assert "escalations" not in data


def test_classify_escalate_without_repository(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["--repo", str(tmp_path), "classify", "agents/a.js", "--status", "added", "--escalate", "--json"],
    )
    assert result.exit_code == 0, result.output
    (escalation,) = json.loads(result.stdout)["escalations"]
    assert escalation["status"] == "manual-review"
    assert escalation["branch_ref"] is None
    assert (tmp_path / ".autover" / "escalations.jsonl").exists()


def test_classify_escalate_notifies_on_high_risk(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli,
        ["--repo", str(tmp_path), "classify", "rules/style.md", "docs/a.md", "--escalate", "--json"],
    )
    assert result.exit_code == 0, result.output
    high, low = json.loads(result.stdout)["escalations"]
    assert high["notified"] is True
    assert low["notified"] is False


def test_classify_table(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "classify", "package.json"])
    assert result.exit_code == 0
    assert "core" in result.stdout


def test_analyze_outside_repository_fails(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "analyze", "HEAD"])
    assert result.exit_code == 1
    assert "Versioning disabled" in result.output


def test_history_outside_repository_is_empty(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "history", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == []


def test_missing_repo_directory(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path / "nope"), "history"])
    assert result.exit_code == 2


def test_bad_config_is_reported(tmp_path: Path) -> None:
    (tmp_path / ".autover.yml").write_text("auto_apply_threshold: 7\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "stats"])
    assert result.exit_code == 1
    assert "Invalid threshold" in result.output


def test_history_and_stats_commands(engine, backend, capsys) -> None:
    backend.add_commit("1" * 40, "fix: typo", [modified("rules/style.md")])
    engine.analyze_commit("1" * 40)

    assert run_history(engine, last_n=5, output_json=True) == 0
    (entry,) = json.loads(capsys.readouterr().out)
    assert entry["decision"]["new_version"] == "1.2.4"

    assert run_stats(engine, output_json=True) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["current_version"] == "1.2.4"
    assert stats["by_status"]["applied"] == 1


def test_threshold_option_is_validated(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "--threshold", "2", "stats"])
    assert result.exit_code == 1
    assert "Invalid threshold" in result.output


def test_threshold_option_reaches_the_engine(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli, ["--repo", str(tmp_path), "--threshold", "0.9", "stats", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["auto_apply_threshold"] == 0.9
