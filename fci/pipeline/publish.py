"""Release Publish job: the join point of the release path.

Runs once, after every Release Build cell succeeded. It gathers all
artifacts of the run, checks that exactly the expected set arrived,
zips each one and creates a draft release with the zips attached. A
missing, unexpected or empty artifact fails the job before any release
exists; there is no partial release.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from fci.core.result import Err, Ok, Result
from fci.pipeline.artifacts import ArtifactStore
from fci.pipeline.cells import CellContext, Step
from fci.pipeline.errors import PackagingError, PipelineError, PublishError
from fci.pipeline.matrix import single_cell
from fci.pipeline.model import RELEASE_BUILD, RELEASE_PUBLISH, MatrixCell, Release
from fci.pipeline.packaging import package_all
from fci.pipeline.release_host import ReleaseHost
from fci.pipeline.scheduler import JobSpec
from fci.platform.files import iter_files

DOWNLOAD_DIR = "download"
ARCHIVE_DIR = "archives"


@dataclass
class PublishState:
    """What the publish cell produced, read back by the runner."""

    archives: list[Path] = field(default_factory=list)
    release: Release | None = None


def verify_artifacts(
    download_dir: Path, expected: Sequence[str]
) -> Result[list[str], PublishError]:
    """Check the downloaded artifact names against the expected set."""
    present: list[str] = []
    if download_dir.is_dir():
        present = sorted(p.name for p in download_dir.iterdir() if p.is_dir())
    missing = sorted(set(expected) - set(present))
    unexpected = sorted(set(present) - set(expected))
    empty = [name for name in present if not iter_files(download_dir / name)]

    if not (missing or unexpected or empty):
        return Ok(present)

    problems = []
    if missing:
        problems.append(f"missing: {', '.join(missing)}")
    if unexpected:
        problems.append(f"unexpected: {', '.join(unexpected)}")
    if empty:
        problems.append(f"empty: {', '.join(empty)}")
    return Err(
        PublishError(
            message=f"expected {len(expected)} artifact(s), found {len(present)}",
            hint="; ".join(problems),
        )
    )


def format_tree(root: Path) -> list[str]:
    """``name/`` headers followed by indented relative file paths."""
    lines: list[str] = []
    if not root.is_dir():
        return lines
    for artifact in sorted(p for p in root.iterdir() if p.is_dir()):
        lines.append(f"{artifact.name}/")
        for f in iter_files(artifact):
            lines.append(f"  {f.relative_to(artifact).as_posix()}")
    return lines


def release_publish_job(
    *,
    ref: str,
    run_id: str,
    store: ArtifactStore,
    host: ReleaseHost,
    expected: Sequence[str],
    state: PublishState,
    needs: tuple[str, ...] = (RELEASE_BUILD,),
) -> JobSpec:
    expected = tuple(expected)

    def with_cell(
        error: PublishError | PackagingError, ctx: CellContext
    ) -> PublishError | PackagingError:
        return replace(error, cell=ctx.cell.cell_id)

    def download(ctx: CellContext) -> Result[None, PipelineError]:
        dest = ctx.work_dir / DOWNLOAD_DIR
        shutil.rmtree(dest, ignore_errors=True)
        result = store.download_all(run_id, dest)
        if isinstance(result, Err):
            return Err(with_cell(result.error, ctx))
        ctx.log(f"downloaded {len(result.value)} artifact(s)")
        return Ok(None)

    def show_tree(ctx: CellContext) -> Result[None, PipelineError]:
        for line in format_tree(ctx.work_dir / DOWNLOAD_DIR):
            ctx.log(line)
        return Ok(None)

    def verify(ctx: CellContext) -> Result[None, PipelineError]:
        result = verify_artifacts(ctx.work_dir / DOWNLOAD_DIR, expected)
        if isinstance(result, Err):
            return Err(with_cell(result.error, ctx))
        return Ok(None)

    def package(ctx: CellContext) -> Result[None, PipelineError]:
        out_dir = ctx.work_dir / ARCHIVE_DIR
        shutil.rmtree(out_dir, ignore_errors=True)
        result = package_all(ctx.work_dir / DOWNLOAD_DIR, out_dir)
        if isinstance(result, Err):
            return Err(with_cell(result.error, ctx))
        state.archives = result.value
        for path in result.value:
            ctx.log(f"packaged {path.name}")
        return Ok(None)

    def create_release(ctx: CellContext) -> Result[None, PipelineError]:
        result = host.create_draft(ref, state.archives)
        if isinstance(result, Err):
            return Err(with_cell(result.error, ctx))
        state.release = result.value
        where = f": {result.value.url}" if result.value.url else ""
        ctx.console.success(f"draft release {ref} created{where}")
        return Ok(None)

    def steps(cell: MatrixCell) -> tuple[Step, ...]:
        return (
            Step("download artifacts", download, PublishError, f"run {run_id}"),
            Step("show downloaded files", show_tree, PublishError),
            Step("verify artifacts", verify, PublishError, f"{len(expected)} expected"),
            Step("package archives", package, PackagingError, "zip, junk paths"),
            Step("create draft release", create_release, PublishError, f"tag {ref}"),
        )

    return JobSpec(
        name=RELEASE_PUBLISH,
        cells=(single_cell(RELEASE_PUBLISH),),
        steps=steps,
        needs=needs,
    )
