"""Watch and run commands - long-running responder and scheduler loops."""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import EngineConfig
from ..engine import VersioningEngine
from ..models import EscalationStatus, TestEscalation
from ..responder import build_responder
from ..scheduler import build_scheduler
from ..watcher import run_watch_loop

_ESCALATION_STYLE = {
    EscalationStatus.LOGGED: "dim",
    EscalationStatus.FLAGGED: "yellow",
    EscalationStatus.CREATED: "yellow",
    EscalationStatus.MANUAL_REVIEW: "red",
}


def _printer(console: Console):
    def on_escalation(escalation: TestEscalation) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        style = _ESCALATION_STYLE.get(escalation.status, "white")
        branch = f" -> {escalation.branch_ref}" if escalation.branch_ref else ""
        console.print(
            f"[dim]{timestamp}[/dim] [{style}]{escalation.status.value}[/{style}] "
            f"{escalation.file} ({escalation.risk_level}){branch}"
        )

    return on_escalation


def run_watch(repo_path: Path, config: EngineConfig) -> None:
    """
    Watch the configured directories and escalate each settled change.

    This is a blocking command that runs until interrupted (Ctrl+C).
    Testing flags are appended to .autover/escalations.jsonl.
    """
    console = Console(stderr=True)
    responder = build_responder(repo_path, config)

    console.print(f"[bold]Watching[/bold] {repo_path}")
    console.print(f"  Directories: {', '.join(config.watch_dirs)}")
    console.print(f"  Test branches: {'on' if responder.backend is not None else 'off (no repository, manual review)'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    try:
        run_watch_loop(repo_path, responder, config, on_escalation=_printer(console))
    finally:
        responder.close()

    total = responder.get_status().details["escalations"]
    console.print()
    console.print(f"[bold]Stopped.[/bold] Escalated {total} changes.")


def run_daemon(engine: VersioningEngine, repo_path: Path, *, watch: bool = True) -> int:
    """Run the scan and health-check tasks (and optionally the watcher) until interrupted."""
    console = Console(stderr=True)
    config = engine.config

    if not engine.enabled:
        console.print(f"[red]Versioning disabled:[/red] {engine.last_error}")
        return 1

    responder = build_responder(repo_path, config, backend=engine.backend)
    scheduler = build_scheduler(engine, [responder])

    console.print(f"[bold]Running[/bold] autover on {repo_path}")
    console.print(f"  scan every {config.scan_interval:g}s, health check every {config.health_interval:g}s")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    stop = threading.Event()
    scheduler.start()
    try:
        if watch:
            run_watch_loop(repo_path, responder, config, on_escalation=_printer(console), stop_event=stop)
        else:
            while not stop.wait(1.0):
                pass
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
        # The responder shares the engine's backend
        responder.close()

    console.print(f"[bold]Stopped.[/bold] {scheduler.get_status().details}")
    return 0
