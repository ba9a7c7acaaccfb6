"""Release Build job: one optimized binary bundle per target triple.

Each cell builds, tests and installs the binaries for its target into a
private staging directory, then uploads ``<staging>/bin`` as the artifact
``{project}-{ref}-{target}``. Cells are independent; a failing target
never cancels its siblings.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from fci.core.config import Config, ConfigurationError
from fci.core.result import Err, Ok, Result
from fci.pipeline.artifacts import ArtifactStore
from fci.pipeline.cells import CellContext, Step, command_step, run_command
from fci.pipeline.commands import Build, Install, Test, describe
from fci.pipeline.errors import BuildError, PackagingError, PipelineError, TestError
from fci.pipeline.matrix import expand
from fci.pipeline.model import RELEASE_BUILD, MatrixCell, artifact_name
from fci.pipeline.scheduler import JobSpec
from fci.pipeline.steps import JobTools, provision_steps
from fci.pipeline.toolchain import ToolchainRequest

STAGING_DIR = "dist"


def release_cells(
    config: Config, targets: Sequence[str] = ()
) -> Result[tuple[MatrixCell, ...], ConfigurationError]:
    """Cells for the configured targets, optionally restricted to ``targets``."""
    configured = config.release.targets
    if targets:
        known = {t.target for t in configured}
        unknown = [t for t in targets if t not in known]
        if unknown:
            return Err(
                ConfigurationError(
                    f"unknown release target(s): {', '.join(unknown)}",
                    hint=f"configured: {', '.join(sorted(known))}",
                )
            )
        configured = tuple(t for t in configured if t.target in targets)

    include = [{"os": t.os, "target": t.target} for t in configured]
    return expand(RELEASE_BUILD, (), include)


def expected_artifacts(config: Config, ref: str, cells: Sequence[MatrixCell]) -> list[str]:
    """Artifact names the publish job must find, one per build cell."""
    return sorted(
        artifact_name(config.project.name, ref, cell.get("target") or "") for cell in cells
    )


def _install_step(tools: JobTools, version: str, target: str) -> Step:
    def argv(ctx: CellContext | None) -> list[str]:
        staging = ctx.work_dir / STAGING_DIR if ctx else Path("<cell>") / STAGING_DIR
        command = Install(staging_dir=staging, target=target)
        return tools.backend.argv(command, toolchain=version)

    def action(ctx: CellContext) -> Result[None, PipelineError]:
        return run_command(ctx, "install", argv(ctx), BuildError)

    return Step(name="install", action=action, error=BuildError, describe=describe(argv(None)))


def _upload_step(store: ArtifactStore, run_id: str, name: str) -> Step:
    def action(ctx: CellContext) -> Result[None, PipelineError]:
        source = ctx.work_dir / STAGING_DIR / "bin"
        result = store.upload(run_id, name, source)
        if isinstance(result, Err):
            return Err(replace(result.error, cell=ctx.cell.cell_id))
        ctx.log(f"uploaded {name}: {', '.join(result.value.files)}")
        return Ok(None)

    return Step(name=f"upload {name}", action=action, error=PackagingError, describe=name)


def release_build_job(
    tools: JobTools,
    *,
    ref: str,
    run_id: str,
    store: ArtifactStore,
    targets: Sequence[str] = (),
) -> Result[JobSpec, ConfigurationError]:
    cells = release_cells(tools.config, targets)
    if isinstance(cells, Err):
        return cells

    version = tools.config.toolchain.stable
    project = tools.config.project.name

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        target = cell.get("target") or ""
        backend = tools.backend
        build = Build(scope="bins", release=True, target=target, all_features=True)
        test = Test(release=True, target=target, all_features=True)
        return (
            *provision_steps(tools, ToolchainRequest(version, target=target)),
            command_step("build", backend.argv(build, toolchain=version), BuildError),
            command_step("test", backend.argv(test, toolchain=version), TestError),
            _install_step(tools, version, target),
            _upload_step(store, run_id, artifact_name(project, ref, target)),
        )

    return Ok(JobSpec(name=RELEASE_BUILD, cells=cells.value, steps=steps))
