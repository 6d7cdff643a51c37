"""Classify command - score paths and optionally escalate them."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import EngineConfig
from ..impact.aggregator import aggregate_impacts
from ..impact.classifier import classify_changes
from ..models import FileChange, FileStatus
from ..responder import build_responder

_RISK_STYLE = {"high": "red", "medium": "yellow", "low": "green"}


def run_classify(
    repo_path: Path,
    config: EngineConfig,
    paths: list[str],
    *,
    file_status: str = "modified",
    escalate: bool = False,
    output_json: bool = False,
) -> int:
    changes = [FileChange(path=p, status=FileStatus(file_status)) for p in paths]
    impacts = classify_changes(changes, config)
    summary = aggregate_impacts("working-tree", impacts, config)

    escalations = []
    if escalate:
        responder = build_responder(repo_path, config)
        try:
            escalations = [responder.respond(i) for i in impacts]
        finally:
            responder.close()

    if output_json:
        data = {
            "files": [i.to_dict() for i in impacts],
            "summary": summary.to_dict(),
        }
        if escalate:
            data["escalations"] = [e.to_dict() for e in escalations]
        print(json.dumps(data, indent=2, sort_keys=True))
        return 0

    console = Console()
    table = Table(title="Change impact")
    table.add_column("file", style="cyan")
    table.add_column("score", justify="right")
    table.add_column("subsystem", style="magenta")
    table.add_column("risk")
    if escalate:
        table.add_column("escalation")
        table.add_column("branch", style="dim")

    for n, impact in enumerate(impacts):
        style = _RISK_STYLE.get(impact.risk_level.value, "white")
        row = [impact.file, str(impact.score), impact.subsystem, f"[{style}]{impact.risk_level.value}[/{style}]"]
        if escalate:
            e = escalations[n]
            row += [e.status.value, e.branch_ref or "-"]
        table.add_row(*row)
    console.print(table)

    console.print(
        f"Overall: [bold]{summary.impact_level.value}[/bold] "
        f"(max {summary.max_impact}, avg {summary.avg_impact:.2f})"
    )
    for factor in summary.risk_factors:
        console.print(f"  [yellow]high risk:[/yellow] {factor}")
    return 0
