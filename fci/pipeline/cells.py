"""Matrix cell execution.

A cell runs its steps strictly in order inside a private work directory.
The first failing step ends the cell with FAILURE; a cancellation observed
before a step ends it with CANCELLED. Steps never see other cells' state.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from fci.core.result import Err, Ok, Result
from fci.output.console import ConsoleProtocol, Style
from fci.pipeline.commands import describe
from fci.pipeline.errors import CancelledError, PipelineError
from fci.pipeline.model import CellResult, JobStatus, MatrixCell, StepRecord
from fci.platform.process import ProcessError
from fci.platform.process import run as run_process


class CommandRunner(Protocol):
    def run(
        self,
        cmd: list[str],
        *,
        cwd: Path,
        env: dict[str, str],
        timeout: float | None,
    ) -> Result[str, ProcessError]: ...


class ProcessRunner:
    """Runs commands as local subprocesses."""

    def run(
        self,
        cmd: list[str],
        *,
        cwd: Path,
        env: dict[str, str],
        timeout: float | None,
    ) -> Result[str, ProcessError]:
        return run_process(cmd, cwd=cwd, env=env, timeout=timeout)


class CancelToken:
    """Thread-safe cancellation flag shared by every cell of a run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


ErrorFactory = Callable[[str, str | None, str | None], PipelineError]


@dataclass
class CellContext:
    cell: MatrixCell
    project_root: Path
    work_dir: Path
    runner: CommandRunner
    console: ConsoleProtocol
    cancel: CancelToken
    deadline: float
    step_timeout: float
    env: dict[str, str] = field(default_factory=dict)

    def remaining(self) -> float:
        return self.deadline - time.monotonic()

    def step_budget(self) -> float:
        """Timeout for the next step: the step bound clamped to the job deadline."""
        return max(0.0, min(self.step_timeout, self.remaining()))

    def log(self, message: str) -> None:
        self.console.print(f"[{self.cell.label}] {message}", Style.DIM)


StepAction = Callable[[CellContext], Result[None, PipelineError]]


@dataclass(frozen=True, slots=True)
class Step:
    """A named unit of work inside a cell.

    ``error`` builds the error reported when the step fails or when the job
    deadline expires before it runs. ``describe`` is shown in dry runs.
    """

    name: str
    action: StepAction
    error: ErrorFactory
    describe: str = ""


def run_cell(cell: MatrixCell, steps: tuple[Step, ...], ctx: CellContext) -> CellResult:
    started = time.monotonic()
    records: list[StepRecord] = []

    def finish(status: JobStatus, error: PipelineError | None) -> CellResult:
        return CellResult(
            cell=cell,
            status=status,
            error=error,
            duration_seconds=time.monotonic() - started,
            steps=tuple(records),
        )

    if not steps:
        return finish(JobStatus.SUCCESS, None)

    try:
        ctx.work_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error = steps[0].error(f"cannot create work dir: {e}", str(ctx.work_dir), cell.cell_id)
        return finish(JobStatus.FAILURE, error)

    for step in steps:
        if ctx.cancel.cancelled:
            ctx.console.warning(f"{cell.label}: cancelled before '{step.name}'")
            return finish(
                JobStatus.CANCELLED,
                CancelledError(f"cancelled before '{step.name}'", cell=cell.cell_id),
            )
        if ctx.remaining() <= 0:
            error = step.error(
                f"{step.name}: job timed out before the step started",
                None,
                cell.cell_id,
            )
            ctx.console.error(f"{cell.label}: {error.message}")
            return finish(JobStatus.FAILURE, error)

        ctx.log(step.name)
        step_started = time.monotonic()
        try:
            result = step.action(ctx)
        except Exception as e:  # noqa: BLE001
            result = Err(step.error(f"{step.name}: {e}", None, cell.cell_id))
        elapsed = time.monotonic() - step_started

        if isinstance(result, Err):
            records.append(StepRecord(step.name, JobStatus.FAILURE, elapsed))
            ctx.console.error(f"{cell.label}: {result.error.message}")
            return finish(JobStatus.FAILURE, result.error)
        records.append(StepRecord(step.name, JobStatus.SUCCESS, elapsed))

    ctx.console.success(cell.label)
    return finish(JobStatus.SUCCESS, None)


def run_command(
    ctx: CellContext, name: str, argv: list[str], error: ErrorFactory
) -> Result[None, PipelineError]:
    """Run one command from the project root within the step budget."""
    ctx.log(describe(argv))
    result = ctx.runner.run(argv, cwd=ctx.project_root, env=ctx.env, timeout=ctx.step_budget())
    if isinstance(result, Ok):
        return Ok(None)
    e = result.error
    if e.timed_out:
        message = f"{name} timed out"
    elif e.returncode == -1:
        message = f"{name} could not start: {argv[0]}"
    else:
        message = f"{name} failed (exit {e.returncode})"
    return Err(error(message, e.tail() or None, ctx.cell.cell_id))


def command_step(name: str, argv: list[str], error: ErrorFactory) -> Step:
    """A step that runs one fixed command."""

    def action(ctx: CellContext) -> Result[None, PipelineError]:
        return run_command(ctx, name, argv, error)

    return Step(name=name, action=action, error=error, describe=describe(argv))
