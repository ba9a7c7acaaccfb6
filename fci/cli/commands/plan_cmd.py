"""Plan command - show which jobs an event would run."""

from __future__ import annotations

import typer

from fci.cli.commands._helpers import parse_event
from fci.cli.context import build_context
from fci.output.console import Style
from fci.pipeline.triggers import evaluate


def plan(
    event: str = typer.Option("push", "--event", help="push|pull_request|tag|manual"),
    ref: str = typer.Option("", "--ref", help="Branch or tag (default: main branch)"),
    base: str | None = typer.Option(
        None, "--base", help="Pull request target branch", show_default=False
    ),
) -> None:
    """Show the jobs an event triggers (nothing is executed)."""
    ctx = build_context()
    ev = parse_event(event, ref or ctx.config.project.main_branch, base)
    result = evaluate(ev, ctx.config.project)

    ctx.console.info(f"{ev}: {result.reason}")
    if result.is_empty:
        ctx.console.print("no jobs", Style.DIM)
        return
    for name in result.jobs:
        ctx.console.print(f"  {name}")
