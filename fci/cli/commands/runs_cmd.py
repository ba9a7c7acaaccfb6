"""Runs commands - inspect recorded workflow runs."""

from __future__ import annotations

import typer

from fci.cli.commands._helpers import exit_on_error
from fci.cli.context import build_context
from fci.core.errors import ErrorCode
from fci.core.result import Err
from fci.output.console import Style
from fci.output.errors import print_run_summary
from fci.pipeline.history import list_runs, read_run

runs_app = typer.Typer(add_completion=False, no_args_is_help=True)


@runs_app.command("list")
def list_cmd(
    limit: int = typer.Option(20, "--limit", "-n", help="Show at most N runs"),
) -> None:
    """List recorded runs, newest first."""
    ctx = build_context()
    runs = list_runs(ctx.paths.runs_dir, ctx.console)
    if not runs:
        ctx.console.print("no runs recorded", Style.DIM)
        return

    rows = [
        [
            run.id,
            str(run.event),
            run.reason,
            str(run.status),
            run.release.tag if run.release else "",
        ]
        for run in runs[:limit]
    ]
    ctx.console.table("runs", ["id", "event", "reason", "status", "release"], rows)


@runs_app.command("show")
def show_cmd(
    run_id: str = typer.Argument(..., help="Run id"),
) -> None:
    """Show the jobs and cells of one run."""
    ctx = build_context()
    result = read_run(ctx.paths.runs_dir, run_id)
    exit_on_error(result, ctx, ErrorCode.USER_ERROR)
    if isinstance(result, Err):
        return

    run = result.value
    ctx.console.info(f"{run.event} (ref {run.ref})")
    if run.reason:
        ctx.console.print(run.reason, Style.INFO)
    ctx.console.print(f"started {run.started_at}, finished {run.finished_at or '-'}", Style.DIM)
    print_run_summary(run, ctx.console)
