"""Tests for the change-risk responder state machine."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from autover.config import EngineConfig
from autover.models import EscalationStatus, FileImpact, RiskLevel
from autover.responder import (
    ChangeRiskResponder,
    EscalationLog,
    build_responder,
    log_integrity_notice,
    sanitize_ref_component,
)

from conftest import FakeVcsBackend, added, modified

NOW = 1_700_000_000.0


@pytest.fixture
def escalation_log(tmp_path: Path) -> EscalationLog:
    return EscalationLog(tmp_path / ".autover" / "escalations.jsonl")


@pytest.fixture
def responder(backend: FakeVcsBackend, escalation_log: EscalationLog) -> ChangeRiskResponder:
    return ChangeRiskResponder(backend, escalation_log=escalation_log, clock=lambda: NOW)


def test_low_risk_is_logged_only(responder, backend, escalation_log) -> None:
    escalation = responder.respond(FileImpact("docs/a.md", 2, "docs", RiskLevel.LOW))
    assert escalation.status == EscalationStatus.LOGGED
    assert escalation.branch_ref is None
    assert backend.branches == {}
    assert escalation_log.read_all() == []


def test_medium_risk_gets_branch_and_flag(responder, backend, escalation_log) -> None:
    escalation = responder.respond(FileImpact("skills/search.md", 5, "skills", RiskLevel.MEDIUM))
    assert escalation.status == EscalationStatus.FLAGGED
    assert escalation.branch_ref == "test-1700000000000-skills-search-md"
    assert escalation.branch_ref in backend.branches
    assert not escalation.notified
    (record,) = escalation_log.read_all()
    assert record["status"] == "flagged"
    assert record["reason"] == "testing"


def test_high_risk_notifies_integrity_monitor(backend, escalation_log) -> None:
    seen = []
    responder = ChangeRiskResponder(
        backend,
        escalation_log=escalation_log,
        notifier=lambda impact, escalation: seen.append(impact.file),
        clock=lambda: NOW,
    )
    escalation = responder.respond(FileImpact("rules/core.md", 8, "rules", RiskLevel.HIGH))
    assert escalation.status == EscalationStatus.FLAGGED
    assert escalation.notified
    assert escalation.reason == "comprehensive testing"
    assert seen == ["rules/core.md"]


def test_notifier_failure_does_not_break_escalation(backend) -> None:
    def boom(impact, escalation):
        raise RuntimeError("monitor down")

    responder = ChangeRiskResponder(backend, notifier=boom, clock=lambda: NOW)
    escalation = responder.respond(FileImpact("package.json", 10, "core", RiskLevel.HIGH))
    assert escalation.status == EscalationStatus.FLAGGED
    assert not escalation.notified
    assert escalation.branch_ref in backend.branches


def test_unknown_risk_is_treated_as_high_with_manual_review(responder, backend) -> None:
    escalation = responder.respond(FileImpact("x.bin", 3, "general", "critical"))
    assert escalation.status == EscalationStatus.MANUAL_REVIEW
    assert escalation.branch_ref in backend.branches
    assert "manual review" in escalation.reason


def test_branch_failure_requests_manual_review(responder, backend) -> None:
    backend.fail_branches = True
    escalation = responder.respond(FileImpact("agents/a.js", 6, "agents", RiskLevel.MEDIUM))
    assert escalation.status == EscalationStatus.MANUAL_REVIEW
    assert "branch creation failed" in escalation.reason
    assert escalation.branch_ref is None
    assert backend.branches == {}


def test_branch_refs_are_never_reused(responder, backend) -> None:
    impact = FileImpact("agents/a.js", 6, "agents", RiskLevel.MEDIUM)
    refs = [responder.respond(impact).branch_ref for _ in range(3)]
    assert len(set(refs)) == 3
    assert refs[1] == refs[0] + "-2"
    assert len(backend.branches) == 3


def test_flag_store_failure_leaves_branch_created(backend, tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    responder = ChangeRiskResponder(backend, escalation_log=EscalationLog(blocker / "escalations.jsonl"), clock=lambda: NOW)
    escalation = responder.respond(FileImpact("agents/a.js", 6, "agents", RiskLevel.MEDIUM))
    assert escalation.status == EscalationStatus.CREATED
    assert escalation.branch_ref in backend.branches


def test_without_backend_requests_manual_review(escalation_log) -> None:
    seen = []
    responder = ChangeRiskResponder(
        None,
        escalation_log=escalation_log,
        notifier=lambda impact, escalation: seen.append(escalation),
        clock=lambda: NOW,
    )

    medium = responder.respond(FileImpact("agents/a.js", 6, "agents", RiskLevel.MEDIUM))
    high = responder.respond(FileImpact("rules/core.md", 8, "rules", RiskLevel.HIGH))

    assert [e.status for e in (medium, high)] == [EscalationStatus.MANUAL_REVIEW] * 2
    assert medium.branch_ref is None
    assert "no repository backend" in medium.reason
    assert high.notified
    assert seen == [high]
    assert [r["branch_ref"] for r in escalation_log.read_all()] == [None, None]


def test_escalate_changes_classifies_first(responder) -> None:
    escalations = responder.escalate_changes([added("agents/new.js"), modified("docs/readme.md")])
    assert [e.status for e in escalations] == [EscalationStatus.FLAGGED, EscalationStatus.LOGGED]
    assert [e.risk_level for e in escalations] == ["medium", "low"]


def test_status_counts(responder) -> None:
    responder.escalate_changes([added("agents/new.js"), modified("docs/readme.md")])
    status = responder.get_status()
    assert status.details["escalations"] == 2
    assert status.details["by_status"] == {"flagged": 1, "logged": 1}


def test_sanitize_ref_component() -> None:
    assert sanitize_ref_component("rules/00 ecp.md") == "rules-00-ecp-md"


def test_integrity_notice_is_logged(caplog) -> None:
    responder = ChangeRiskResponder(FakeVcsBackend(), notifier=log_integrity_notice, clock=lambda: NOW)
    with caplog.at_level(logging.WARNING, logger="autover.integrity"):
        escalation = responder.respond(FileImpact("package.json", 10, "core", RiskLevel.HIGH))
    assert escalation.notified
    assert "High-risk change to package.json" in caplog.text
    assert escalation.branch_ref in caplog.text


def test_build_responder_notifies_and_logs(backend, tmp_path: Path) -> None:
    config = EngineConfig()
    responder = build_responder(tmp_path, config, backend=backend)
    escalation = responder.respond(FileImpact("rules/core.md", 8, "rules", RiskLevel.HIGH))

    assert responder.notifier is log_integrity_notice
    assert escalation.status == EscalationStatus.FLAGGED
    assert escalation.notified
    assert escalation.branch_ref in backend.branches
    (record,) = EscalationLog(config.escalations_path(tmp_path)).read_all()
    assert record["notified"] is True


def test_build_responder_outside_repository(tmp_path: Path) -> None:
    responder = build_responder(tmp_path, EngineConfig())
    assert responder.backend is None
    escalation = responder.respond(FileImpact("agents/a.js", 6, "agents", RiskLevel.MEDIUM))
    assert escalation.status == EscalationStatus.MANUAL_REVIEW
    responder.close()
