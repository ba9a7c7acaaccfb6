"""Quality gate jobs: Build & Test, Lint, Dependency Audit, Format.

The four jobs are independent verifications run on pushes to and pull
requests against the main branch. They only read the project; none of
them uploads artifacts or touches release state.
"""

from __future__ import annotations

import shutil
from functools import partial

from fci.core.config import ConfigurationError
from fci.core.result import Err, Ok, Result
from fci.pipeline.cells import CellContext, Step, command_step
from fci.pipeline.commands import (
    Build,
    DependencyAudit,
    FormatCheck,
    InstallAuditTool,
    Lint,
    Test,
)
from fci.pipeline.errors import (
    BuildError,
    DependencyPolicyError,
    LintError,
    PipelineError,
    TestError,
    ToolchainError,
)
from fci.pipeline.matrix import expand, single_cell
from fci.pipeline.model import BUILD_AND_TEST, DEPENDENCY_AUDIT, FORMAT, LINT, MatrixCell
from fci.pipeline.scheduler import JobSpec
from fci.pipeline.steps import JobTools, cache_steps, provision_steps
from fci.pipeline.toolchain import ToolchainRequest

# Singleton gates run on this runner label.
GATE_RUNNER_OS = "ubuntu"

FormatError = partial(LintError, kind="format")


def build_and_test_job(tools: JobTools) -> Result[JobSpec, ConfigurationError]:
    """Matrix over {os} x {toolchain}: locked debug build, then the full test suite."""
    matrix = tools.config.build_matrix
    cells = expand(BUILD_AND_TEST, (("os", matrix.os), ("toolchain", matrix.toolchain)))
    if isinstance(cells, Err):
        return cells

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        os_label = cell.get("os") or GATE_RUNNER_OS
        version = tools.config.toolchain.resolve(cell.get("toolchain") or "stable")
        cache = cache_steps(tools, os=os_label, toolchain=version)
        backend = tools.backend

        out: list[Step] = [*provision_steps(tools, ToolchainRequest(version))]
        if cache:
            out.append(cache[0])
        out.append(command_step("build", backend.argv(Build(), toolchain=version), BuildError))
        out.append(command_step("test", backend.argv(Test(), toolchain=version), TestError))
        if cache:
            out.append(cache[1])
        return tuple(out)

    return Ok(JobSpec(name=BUILD_AND_TEST, cells=cells.value, steps=steps))


def lint_job(tools: JobTools) -> JobSpec:
    """Static analysis on stable; any warning fails the job."""
    version = tools.config.toolchain.stable

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        cache = cache_steps(tools, os=GATE_RUNNER_OS, toolchain=f"{version}-clippy")
        lint = tools.backend.argv(Lint(deny_warnings=True), toolchain=version)

        out: list[Step] = [
            *provision_steps(tools, ToolchainRequest(version, components=("clippy",)))
        ]
        if cache:
            out.append(cache[0])
        out.append(command_step("lint", lint, LintError))
        if cache:
            out.append(cache[1])
        return tuple(out)

    return JobSpec(name=LINT, cells=(single_cell(LINT, os=GATE_RUNNER_OS),), steps=steps)


def _install_audit_tool_step(tools: JobTools) -> Step:
    command = InstallAuditTool()
    install = command_step(
        f"install {command.tool}", tools.backend.argv(command), ToolchainError
    )

    def action(ctx: CellContext) -> Result[None, PipelineError]:
        if shutil.which(command.tool) is not None:
            ctx.log(f"{command.tool} already installed")
            return Ok(None)
        return install.action(ctx)

    return Step(name=install.name, action=action, error=install.error, describe=install.describe)


def dependency_audit_job(tools: JobTools) -> JobSpec:
    """License/advisory policy check over the locked dependency set."""
    version = tools.config.toolchain.stable

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        audit = tools.backend.argv(DependencyAudit(all_features=True))
        return (
            *provision_steps(tools, ToolchainRequest(version)),
            _install_audit_tool_step(tools),
            command_step("dependency audit", audit, DependencyPolicyError),
        )

    return JobSpec(
        name=DEPENDENCY_AUDIT,
        cells=(single_cell(DEPENDENCY_AUDIT, os=GATE_RUNNER_OS),),
        steps=steps,
    )


def format_job(tools: JobTools) -> JobSpec:
    """Canonical formatting check; never rewrites files."""
    version = tools.config.toolchain.stable

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        check = tools.backend.argv(FormatCheck(), toolchain=version)
        return (
            *provision_steps(tools, ToolchainRequest(version, components=("rustfmt",))),
            command_step("format check", check, FormatError),
        )

    return JobSpec(name=FORMAT, cells=(single_cell(FORMAT, os=GATE_RUNNER_OS),), steps=steps)


def quality_gate_jobs(tools: JobTools) -> Result[tuple[JobSpec, ...], ConfigurationError]:
    build = build_and_test_job(tools)
    if isinstance(build, Err):
        return build
    return Ok((build.value, lint_job(tools), dependency_audit_job(tools), format_job(tools)))
