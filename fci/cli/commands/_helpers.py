"""Shared helpers for CLI commands."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from fci.core.errors import ErrorCode
from fci.core.result import Err, Result
from fci.output.console import Style
from fci.output.errors import print_run_summary, run_status_exit_code
from fci.pipeline.cells import CancelToken
from fci.pipeline.model import EVENT_KINDS, Event, WorkflowRun

if TYPE_CHECKING:
    from fci.cli.context import CLIContext

T = TypeVar("T")
E = TypeVar("E")


def exit_on_error(
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.BUILD_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))


def parse_event(kind: str, ref: str, base: str | None) -> Event:
    if kind not in EVENT_KINDS:
        typer.echo(f"error: --event must be one of: {', '.join(EVENT_KINDS)}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return Event(kind=kind, ref=ref, base_ref=base)  # pyright: ignore[reportArgumentType]


@contextmanager
def cancel_on_sigterm(token: CancelToken) -> Iterator[None]:
    """Treat SIGTERM (CI job cancellation) like Ctrl-C: cancel the run."""

    def handler(signum: int, frame: object) -> None:
        token.cancel()

    try:
        previous = signal.signal(signal.SIGTERM, handler)
    except ValueError:
        # not on the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def finish_run(run: WorkflowRun, ctx: CLIContext) -> NoReturn:
    """Print the run summary and exit with the run's exit code."""
    print_run_summary(run, ctx.console)
    raise typer.Exit(code=run_status_exit_code(run.status))
