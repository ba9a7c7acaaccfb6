"""Run command - execute every job an event triggers."""

from __future__ import annotations

import os

import typer

from fci.cli.commands._helpers import cancel_on_sigterm, exit_on_error, finish_run, parse_event
from fci.cli.context import build_context
from fci.core.errors import ErrorCode
from fci.core.result import Err, Ok
from fci.output.errors import pipeline_error_exit_code, print_pipeline_error
from fci.pipeline.model import Event
from fci.pipeline.runner import WorkflowRunner


def run(
    event: str = typer.Option("push", "--event", help="push|pull_request|tag|manual"),
    ref: str = typer.Option("", "--ref", help="Branch or tag (default: main branch)"),
    base: str | None = typer.Option(
        None, "--base", help="Pull request target branch", show_default=False
    ),
    from_env: bool = typer.Option(
        False, "--from-env", help="Read the event from GitHub Actions variables"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the plan without executing"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide per-step output"),
) -> None:
    """Run the workflow graph for an event."""
    ctx = build_context(quiet=quiet)

    ev: Event | None
    if from_env:
        ev = Event.from_github_env(os.environ)
        if ev is None:
            ctx.console.error("no supported GitHub Actions event in the environment")
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    else:
        ev = parse_event(event, ref or ctx.config.project.main_branch, base)

    runner = WorkflowRunner(project=ctx.project, config=ctx.config, console=ctx.console)
    if dry_run:
        exit_on_error(runner.dry_run(ev), ctx, ErrorCode.USER_ERROR)
        return

    with cancel_on_sigterm(runner.cancel_token):
        result = runner.run(ev)

    match result:
        case Ok(workflow_run):
            finish_run(workflow_run, ctx)
        case Err(error):
            print_pipeline_error(error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(error))
