"""CLI entrypoint for autover."""

import sys
from pathlib import Path

import click

from . import __version__


def _auto_detect_repo(start: Path) -> Path:
    """Nearest ancestor holding a .git entry, else ``start``."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / ".git").exists():
            return p
    return cur


def _engine(ctx: click.Context):
    from .engine import build_engine
    from .errors import AutoverError

    if "engine" not in ctx.obj:
        engine = build_engine(ctx.obj["repo"], ctx.obj["config"])
        if ctx.obj.get("threshold") is not None:
            try:
                engine.set_auto_apply_threshold(ctx.obj["threshold"])
            except AutoverError as e:
                raise click.ClickException(str(e)) from e
        ctx.obj["engine"] = engine
    return ctx.obj["engine"]


@click.group()
@click.version_option(__version__, prog_name="autover")
@click.option(
    "--repo",
    "-r",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Repository root (defaults to the enclosing git repository)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (defaults to <repo>/.autover.yml)",
)
@click.option(
    "--threshold",
    "-t",
    type=float,
    default=None,
    help="Auto-apply confidence threshold for this run (overrides config)",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
@click.pass_context
def cli(
    ctx: click.Context,
    repo: Path | None,
    config_path: Path | None,
    threshold: float | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """autover - change-impact analysis and autonomous semantic versioning.

    Classifies the risk of each change, derives a semver bump with a
    confidence score, and tags the commit when confident enough.
    """
    from .config import load_config
    from .errors import AutoverError
    from .logging_config import setup_logging

    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    if repo is None:
        repo = _auto_detect_repo(Path.cwd())
    if not repo.exists() or not repo.is_dir():
        raise click.BadParameter(f"Directory '{repo}' does not exist.", param_hint="--repo / -r")

    try:
        config = load_config(repo.resolve(), config_path)
    except AutoverError as e:
        raise click.ClickException(str(e)) from e

    ctx.obj["repo"] = repo.resolve()
    ctx.obj["config"] = config
    ctx.obj["threshold"] = threshold


@cli.command()
@click.argument("commit_hash", metavar="HASH")
@click.option("--json", "output_json", is_flag=True, help="Output the result as JSON")
@click.pass_context
def analyze(ctx: click.Context, commit_hash: str, output_json: bool) -> None:
    """Analyse one commit and version it if confident enough.

    Examples:

        autover analyze HEAD

        autover analyze 3f2a9c1 --json
    """
    from .commands.versioning_cmd import run_analyze

    sys.exit(run_analyze(_engine(ctx), commit_hash, output_json=output_json))


@cli.command()
@click.option("--count", "-n", type=int, default=None, help="Number of recent commits (default from config)")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def scan(ctx: click.Context, count: int | None, output_json: bool) -> None:
    """Analyse the most recent commits, oldest first."""
    from .commands.versioning_cmd import run_scan

    sys.exit(run_scan(_engine(ctx), count, output_json=output_json))


@cli.command()
@click.argument("commit_hash", metavar="HASH")
@click.argument("version")
@click.pass_context
def override(ctx: click.Context, commit_hash: str, version: str) -> None:
    """Tag a commit with a chosen VERSION, bypassing the decision rule.

    Examples:

        autover override HEAD 2.0.0
    """
    from .commands.versioning_cmd import run_override

    sys.exit(run_override(_engine(ctx), commit_hash, version))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Only the last N entries")
@click.option("--json", "output_json", is_flag=True, help="Output entries as JSON")
@click.pass_context
def history(ctx: click.Context, last_n: int | None, output_json: bool) -> None:
    """Show the versioning ledger."""
    from .commands.versioning_cmd import run_history

    sys.exit(run_history(_engine(ctx), last_n=last_n, output_json=output_json))


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output statistics as JSON")
@click.pass_context
def stats(ctx: click.Context, output_json: bool) -> None:
    """Summarise versioning decisions."""
    from .commands.versioning_cmd import run_stats

    sys.exit(run_stats(_engine(ctx), output_json=output_json))


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Report component health."""
    from .commands.versioning_cmd import run_status

    sys.exit(run_status(_engine(ctx)))


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--status",
    "file_status",
    type=click.Choice(["added", "modified", "deleted"]),
    default="modified",
    show_default=True,
    help="Change kind to classify the paths as",
)
@click.option("--escalate", is_flag=True, help="Run the change-risk responder on the results")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def classify(ctx: click.Context, paths: tuple[str, ...], file_status: str, escalate: bool, output_json: bool) -> None:
    """Classify the impact of changing PATHS.

    Examples:

        autover classify rules/00-ecp-mode.md docs/readme.md

        autover classify agents/monitor.js --status added --escalate
    """
    from .commands.classify_cmd import run_classify

    sys.exit(
        run_classify(
            ctx.obj["repo"],
            ctx.obj["config"],
            list(paths),
            file_status=file_status,
            escalate=escalate,
            output_json=output_json,
        )
    )


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Watch the configured directories and escalate risky changes.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    run_watch(ctx.obj["repo"], ctx.obj["config"])


@cli.command()
@click.option("--no-watch", is_flag=True, help="Do not start the file watcher")
@click.pass_context
def run(ctx: click.Context, no_watch: bool) -> None:
    """Run the scheduler (commit scan + health check) until interrupted."""
    from .commands.watch_cmd import run_daemon

    sys.exit(run_daemon(_engine(ctx), ctx.obj["repo"], watch=not no_watch))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
