"""Release commands - build release artifacts and publish a draft release."""

from __future__ import annotations

import typer

from fci.cli.commands._helpers import cancel_on_sigterm, finish_run
from fci.cli.context import build_context
from fci.core.result import Err, Ok
from fci.output.errors import pipeline_error_exit_code, print_pipeline_error
from fci.pipeline.runner import WorkflowRunner

release_app = typer.Typer(add_completion=False, no_args_is_help=True)


@release_app.command("build")
def build_cmd(
    ref: str = typer.Option(..., "--ref", help="Tag or branch the artifacts are named after"),
    target: list[str] = typer.Option(
        [], "--target", help="Restrict to these target triples (repeatable)"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide per-step output"),
) -> None:
    """Run only the Release Build matrix (no publish)."""
    ctx = build_context(quiet=quiet)
    runner = WorkflowRunner(project=ctx.project, config=ctx.config, console=ctx.console)

    with cancel_on_sigterm(runner.cancel_token):
        result = runner.run_release_build(ref=ref, targets=target)

    match result:
        case Ok(workflow_run):
            finish_run(workflow_run, ctx)
        case Err(error):
            print_pipeline_error(error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(error))


@release_app.command("publish")
def publish_cmd(
    run_id: str = typer.Option(..., "--run", help="Run whose artifacts are published"),
) -> None:
    """Publish a draft release from an earlier run's artifacts."""
    ctx = build_context()
    runner = WorkflowRunner(project=ctx.project, config=ctx.config, console=ctx.console)

    match runner.publish_existing(run_id):
        case Ok(workflow_run):
            finish_run(workflow_run, ctx)
        case Err(error):
            print_pipeline_error(error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(error))
