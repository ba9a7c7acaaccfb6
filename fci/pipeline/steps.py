"""Step factories shared by the quality gate and release jobs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fci.core.config import Config
from fci.core.result import Ok, Result
from fci.pipeline.cache import DependencyCache
from fci.pipeline.cells import CellContext, Step, command_step
from fci.pipeline.commands import CargoBackend
from fci.pipeline.errors import BuildError, PipelineError, ToolchainError
from fci.pipeline.toolchain import ToolchainRequest


@dataclass(frozen=True, slots=True)
class JobTools:
    """Collaborators every job template needs."""

    config: Config
    backend: CargoBackend
    lockfile: Path
    cache: DependencyCache | None = None


def target_dir(ctx: CellContext) -> Path:
    """The cell's private Cargo target directory."""
    return ctx.work_dir / "target"


def provision_steps(tools: JobTools, request: ToolchainRequest) -> tuple[Step, ...]:
    if not tools.config.toolchain.provision:
        return ()
    return (command_step(f"install toolchain {request}", request.argv(), ToolchainError),)


def cache_steps(
    tools: JobTools, *, os: str, toolchain: str, target: str | None = None
) -> tuple[Step, Step] | None:
    """Restore/save steps around a build, or None when caching is off."""
    cache = tools.cache
    if cache is None:
        return None
    key = cache.key(os=os, toolchain=toolchain, target=target, lockfile=tools.lockfile)

    def restore(ctx: CellContext) -> Result[None, PipelineError]:
        hit = cache.restore(key, target_dir(ctx))
        ctx.log(f"cache {'hit' if hit else 'miss'}: {key}")
        return Ok(None)

    def save(ctx: CellContext) -> Result[None, PipelineError]:
        if cache.save(key, target_dir(ctx)):
            ctx.log(f"cache saved: {key}")
        return Ok(None)

    return (
        Step(name="restore dependency cache", action=restore, error=BuildError, describe=key),
        Step(name="save dependency cache", action=save, error=BuildError, describe=key),
    )
