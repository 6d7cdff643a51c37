"""Versioning CLI commands: analyze, scan, override, history, stats, status."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from ..engine import BLOCKED, DISABLED, FAILED, OperationResult, VersioningEngine

_STATUS_STYLE = {
    "applied": "green",
    "recorded": "green",
    "manual": "green",
    "pending-review": "yellow",
    "manual-review-pending": "yellow",
    "duplicate": "dim",
    "skipped": "dim",
    "failed": "red",
    "blocked": "red",
    "disabled": "red",
}


def _styled(status: str) -> str:
    style = _STATUS_STYLE.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _raise_for(result: OperationResult) -> None:
    if result.status == DISABLED:
        detail = f": {result.error}" if result.error else ""
        raise click.ClickException(f"Versioning disabled{detail}")
    if result.status == FAILED:
        raise click.ClickException(str(result.error) if result.error else result.message or "failed")
    if result.status == BLOCKED:
        raise click.ClickException(result.message)


def run_analyze(engine: VersioningEngine, commit_hash: str, *, output_json: bool = False) -> int:
    result = engine.analyze_commit(commit_hash)
    if output_json:
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return 0 if result.success else 1
    _raise_for(result)

    console = Console()
    decision = result.decision
    console.print(f"[bold]{(result.commit_hash or commit_hash)[:12]}[/bold] {_styled(result.status)}")
    if result.message:
        console.print(f"  {result.message}")
    if decision is not None:
        console.print(
            f"  {decision.current_version} -> [bold]{decision.new_version}[/bold] "
            f"({decision.tier.value}, confidence {decision.confidence:.2f})"
        )
    if result.impact is not None:
        impact = result.impact
        console.print(
            f"  impact: {impact.impact_level.value} (max {impact.max_impact}, avg {impact.avg_impact:.2f}, "
            f"{impact.change_count} files)"
        )
        if impact.affected_systems:
            console.print(f"  systems: {', '.join(sorted(impact.affected_systems))}")
    if result.patterns is not None and result.patterns.patterns:
        console.print(f"  patterns: {', '.join(result.patterns.patterns)}")

    if result.file_impacts:
        table = Table(title="File impact")
        table.add_column("file", style="cyan")
        table.add_column("score", justify="right")
        table.add_column("subsystem", style="magenta")
        table.add_column("risk")
        for fi in result.file_impacts:
            table.add_row(fi.file, str(fi.score), fi.subsystem, fi.risk_level.value)
        console.print(table)
    return 0


def run_scan(engine: VersioningEngine, count: int | None, *, output_json: bool = False) -> int:
    results = engine.scan_recent(count)
    if output_json:
        print(json.dumps([r.to_dict() for r in results], indent=2, sort_keys=True))
        return 0 if all(r.success for r in results) else 1

    if len(results) == 1 and results[0].status == DISABLED:
        _raise_for(results[0])

    console = Console()
    if not results:
        console.print("[dim]No commits found.[/dim]")
        return 0

    table = Table(title="Scan")
    table.add_column("commit", style="cyan", no_wrap=True)
    table.add_column("status")
    table.add_column("version")
    table.add_column("tier")
    table.add_column("confidence", justify="right")
    table.add_column("note", style="dim")
    for r in results:
        d = r.decision
        table.add_row(
            (r.commit_hash or "-")[:12],
            _styled(r.status),
            d.new_version if d else "-",
            d.tier.value if d else "-",
            f"{d.confidence:.2f}" if d else "-",
            str(r.error) if r.error else r.message,
        )
    console.print(table)
    return 0 if all(r.success for r in results) else 1


def run_override(engine: VersioningEngine, commit_hash: str, version: str) -> int:
    result = engine.manual_override(commit_hash, version)
    _raise_for(result)
    Console().print(f"[bold]{(result.commit_hash or commit_hash)[:12]}[/bold] {_styled(result.status)} {result.message}")
    return 0


def run_history(engine: VersioningEngine, *, last_n: int | None = None, output_json: bool = False) -> int:
    entries = engine.get_history()
    if last_n is not None:
        entries = entries[-last_n:] if last_n > 0 else []

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    console = Console()
    if not entries:
        console.print("[dim]No versioning history.[/dim]")
        return 0

    table = Table(title="Versioning ledger")
    table.add_column("recorded", style="dim")
    table.add_column("commit", style="cyan", no_wrap=True)
    table.add_column("version")
    table.add_column("tier")
    table.add_column("confidence", justify="right")
    table.add_column("status")
    table.add_column("patterns", style="magenta")
    for e in entries:
        d = e.decision
        table.add_row(
            e.recorded_at,
            d.commit_hash[:12],
            f"{d.current_version} -> {d.new_version}",
            d.tier.value,
            f"{d.confidence:.2f}",
            _styled(e.status.value),
            ", ".join(e.patterns) or "-",
        )
    console.print(table)
    return 0


def run_stats(engine: VersioningEngine, *, output_json: bool = False) -> int:
    stats: dict[str, Any] = engine.get_statistics()
    if output_json:
        print(json.dumps(stats, indent=2, sort_keys=True))
        return 0

    console = Console()
    table = Table(title="Versioning statistics", show_header=False)
    table.add_column("metric", style="cyan")
    table.add_column("value")
    table.add_row("current version", str(stats["current_version"]))
    table.add_row("last version", str(stats["last_version"] or "-"))
    table.add_row("total entries", str(stats["total_entries"]))
    for tier, n in stats["by_tier"].items():
        table.add_row(f"  {tier}", str(n))
    for status, n in stats["by_status"].items():
        table.add_row(f"  {status}", str(n))
    table.add_row("average confidence", f"{stats['average_confidence']:.2f}")
    table.add_row("pending reviews", str(stats["pending_reviews"]))
    table.add_row("auto-apply", f"{stats['auto_apply']} (threshold {stats['auto_apply_threshold']})")
    table.add_row("enabled", str(stats["enabled"]))
    console.print(table)
    return 0


def run_status(engine: VersioningEngine) -> int:
    status = engine.get_status()
    console = Console()
    mark = "[green]healthy[/green]" if status.healthy else "[red]unhealthy[/red]"
    console.print(f"[bold]{status.name}[/bold] {mark}")
    for key, value in status.details.items():
        console.print(f"  {key}: {value}")
    return 0 if status.healthy else 1
