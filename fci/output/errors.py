"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fci.core.errors import ErrorCode
from fci.output.console import Style
from fci.pipeline.errors import (
    BuildError,
    CancelledError,
    ConfigurationError,
    DependencyPolicyError,
    LintError,
    PackagingError,
    PipelineError,
    PublishError,
    TestError,
    ToolchainError,
    error_kind,
)
from fci.pipeline.model import JobStatus, WorkflowRun

if TYPE_CHECKING:
    from fci.output.console import ConsoleProtocol

__all__ = [
    "pipeline_error_exit_code",
    "print_pipeline_error",
    "print_run_summary",
    "run_status_exit_code",
]


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error to console with appropriate formatting."""
    match error:
        case ConfigurationError(message=message, path=path):
            where = f" ({path})" if path else ""
            console.error(f"invalid configuration{where}: {message}")
        case LintError(kind="format", message=message, cell=cell):
            console.error(f"{cell}: formatting: {message}" if cell else f"formatting: {message}")
        case _:
            cell = error.cell
            console.error(f"{cell}: {error.message}" if cell else error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error:
        case ConfigurationError():
            return int(ErrorCode.USER_ERROR)
        case ToolchainError():
            return int(ErrorCode.ENV_ERROR)
        case BuildError() | TestError() | LintError() | DependencyPolicyError():
            return int(ErrorCode.BUILD_ERROR)
        case PackagingError():
            return int(ErrorCode.IO_ERROR)
        case PublishError():
            return int(ErrorCode.NETWORK_ERROR)
        case CancelledError():
            return int(ErrorCode.CANCELLED)


def run_status_exit_code(status: JobStatus) -> int:
    match status:
        case JobStatus.SUCCESS:
            return int(ErrorCode.OK)
        case JobStatus.CANCELLED:
            return int(ErrorCode.CANCELLED)
        case _:
            return int(ErrorCode.BUILD_ERROR)


def print_run_summary(run: WorkflowRun, console: ConsoleProtocol) -> None:
    """One table row per cell, followed by the run's outcome."""
    rows: list[list[str]] = []
    for job in run.jobs:
        for cell in job.cells:
            coords = ", ".join(v for _, v in cell.cell.coordinates) or "-"
            error = ""
            if cell.error is not None:
                error = f"{error_kind(cell.error)}: {cell.error.message}"
            rows.append([job.name, coords, str(cell.status), error])
    if rows:
        console.table(f"run {run.id}", ["job", "cell", "status", "error"], rows)

    if run.release is not None:
        where = run.release.url or run.release.tag
        console.success(f"draft release {run.release.tag}: {where}")
    if run.artifacts:
        console.print(f"artifacts: {', '.join(run.artifacts)}", Style.DIM)

    match run.status:
        case JobStatus.SUCCESS:
            console.success(f"run {run.id} succeeded")
        case JobStatus.CANCELLED:
            console.warning(f"run {run.id} cancelled")
        case _:
            console.error(f"run {run.id} {run.status}")
