"""Tests for the file impact classifier and commit aggregator."""

from __future__ import annotations

import pytest

from autover.config import EngineConfig
from autover.impact.aggregator import aggregate_impacts
from autover.impact.classifier import bucket_risk, classify_changes, classify_file, in_directory
from autover.models import FileChange, FileImpact, FileStatus, RiskLevel


@pytest.mark.parametrize(
    "path, score, subsystem, level",
    [
        ("package.json", 10, "core", RiskLevel.HIGH),
        ("rules/00-ecp-mode.md", 10, "core", RiskLevel.HIGH),
        ("src/distributed-startup.js", 10, "core", RiskLevel.HIGH),
        ("rules/style.md", 8, "rules", RiskLevel.HIGH),
        ("agents/monitor.js", 6, "agents", RiskLevel.MEDIUM),
        ("skills/search/SKILL.md", 5, "skills", RiskLevel.MEDIUM),
        ("docs/guide.md", 2, "docs", RiskLevel.LOW),
        ("README.md", 2, "docs", RiskLevel.LOW),
        ("src/app.py", 3, "general", RiskLevel.LOW),
    ],
)
def test_classification_table(path: str, score: int, subsystem: str, level: RiskLevel) -> None:
    impact = classify_file(FileChange(path=path))
    assert impact.score == score
    assert impact.subsystem == subsystem
    assert impact.risk_level == level


def test_first_match_wins_rules_over_markdown() -> None:
    # A markdown file in rules/ is a rules change, not docs
    assert classify_file(FileChange(path="rules/notes.md")).subsystem == "rules"


def test_status_does_not_change_score() -> None:
    scores = {
        classify_file(FileChange(path="agents/a.js", status=status)).score
        for status in FileStatus
    }
    assert scores == {6}


def test_directory_match_is_by_segment() -> None:
    assert in_directory("rules/x.md", "rules")
    assert in_directory("nested/agents/x.js", "agents")
    assert not in_directory("myrules/x.md", "rules")
    # The file name itself is not a directory
    assert not in_directory("agents", "agents")


def test_windows_separators_are_normalized() -> None:
    impact = classify_file(FileChange(path=".\\agents\\monitor.js"))
    assert impact.file == "agents/monitor.js"
    assert impact.subsystem == "agents"


def test_critical_files_come_from_config() -> None:
    cfg = EngineConfig(critical_files=("src/engine.py",))
    assert classify_file(FileChange(path="src/engine.py"), cfg).score == 10
    assert classify_file(FileChange(path="package.json"), cfg).score == 3


@pytest.mark.parametrize(
    "score, level",
    [(0, RiskLevel.LOW), (4, RiskLevel.LOW), (5, RiskLevel.MEDIUM), (7, RiskLevel.MEDIUM), (8, RiskLevel.HIGH), (10, RiskLevel.HIGH)],
)
def test_bucket_thresholds(score: int, level: RiskLevel) -> None:
    assert bucket_risk(score) == level


def test_scores_always_in_range() -> None:
    paths = ["", "a", "rules/a", "agents/b", "skills/c", "d.md", "package.json", "x/y/z.txt"]
    for impact in classify_changes([FileChange(path=p) for p in paths]):
        assert 0 <= impact.score <= 10
        assert impact.risk_level == bucket_risk(impact.score)


class TestAggregator:
    def test_empty_commit_is_low(self) -> None:
        analysis = aggregate_impacts("abc", [])
        assert analysis.max_impact == 0
        assert analysis.avg_impact == 0.0
        assert analysis.impact_level == RiskLevel.LOW
        assert analysis.affected_systems == frozenset()
        assert analysis.change_count == 0

    def test_max_avg_and_systems(self) -> None:
        impacts = classify_changes(
            [
                FileChange(path="rules/a.md"),
                FileChange(path="docs/b.md"),
                FileChange(path="src/c.py"),
            ]
        )
        analysis = aggregate_impacts("abc", impacts)
        assert analysis.max_impact == 8
        assert analysis.avg_impact == pytest.approx((8 + 2 + 3) / 3)
        assert analysis.impact_level == RiskLevel.HIGH
        assert analysis.affected_systems == {"rules", "docs", "general"}
        assert analysis.risk_factors == ("rules/a.md",)
        assert analysis.max_impact >= analysis.avg_impact

    def test_level_follows_max_not_average(self) -> None:
        impacts = [FileImpact("a", 8, "rules", RiskLevel.HIGH)] + [
            FileImpact(f"d{i}.md", 2, "docs", RiskLevel.LOW) for i in range(10)
        ]
        assert aggregate_impacts("abc", impacts).impact_level == RiskLevel.HIGH
