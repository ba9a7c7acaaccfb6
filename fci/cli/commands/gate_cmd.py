"""Gate command - run a single quality gate job."""

from __future__ import annotations

from enum import StrEnum

import typer

from fci.cli.commands._helpers import cancel_on_sigterm, finish_run
from fci.cli.context import build_context
from fci.core.result import Err, Ok
from fci.output.errors import pipeline_error_exit_code, print_pipeline_error
from fci.pipeline.model import BUILD_AND_TEST, DEPENDENCY_AUDIT, FORMAT, LINT
from fci.pipeline.runner import WorkflowRunner


class Gate(StrEnum):
    build_and_test = "build-and-test"
    lint = "lint"
    audit = "audit"
    format = "format"


JOB_FOR_GATE = {
    Gate.build_and_test: BUILD_AND_TEST,
    Gate.lint: LINT,
    Gate.audit: DEPENDENCY_AUDIT,
    Gate.format: FORMAT,
}


def gate(
    name: Gate = typer.Argument(..., help="build-and-test|lint|audit|format"),
    ref: str | None = typer.Option(None, "--ref", help="Ref recorded for the run"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide per-step output"),
) -> None:
    """Run one quality gate job."""
    ctx = build_context(quiet=quiet)
    runner = WorkflowRunner(project=ctx.project, config=ctx.config, console=ctx.console)

    with cancel_on_sigterm(runner.cancel_token):
        result = runner.run_gate(JOB_FOR_GATE[name], ref=ref)

    match result:
        case Ok(workflow_run):
            finish_run(workflow_run, ctx)
        case Err(error):
            print_pipeline_error(error, ctx.console)
            raise typer.Exit(code=pipeline_error_exit_code(error))
