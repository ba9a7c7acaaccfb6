"""Directory-backed artifact store.

Layout: ``<root>/<run_id>/<artifact name>/...``. An upload is copied to a
temporary directory and renamed into place, so an artifact is either
complete or absent. Artifacts are immutable: a second upload of the same
name in the same run is rejected.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from fci.core.result import Err, Ok, Result
from fci.pipeline.errors import PackagingError, PublishError
from fci.pipeline.model import Artifact
from fci.platform.files import copy_tree_atomic, iter_files


class ArtifactStore:
    def __init__(self, root: Path) -> None:
        self._root = root

    def run_dir(self, run_id: str) -> Path:
        return self._root / run_id

    def _artifact(self, path: Path) -> Artifact:
        files = tuple(p.relative_to(path).as_posix() for p in iter_files(path))
        return Artifact(name=path.name, path=path, files=files)

    def upload(self, run_id: str, name: str, source: Path) -> Result[Artifact, PackagingError]:
        if not iter_files(source):
            return Err(
                PackagingError(
                    message=f"artifact {name}: nothing to upload",
                    hint=f"{source} is missing or empty",
                )
            )

        dest = self.run_dir(run_id) / name
        try:
            copy_tree_atomic(source, dest)
        except FileExistsError:
            return Err(
                PackagingError(
                    message=f"artifact {name} already exists in run {run_id}",
                    hint="artifacts are immutable; one upload per name per run",
                )
            )
        except OSError as e:
            return Err(PackagingError(message=f"artifact {name}: upload failed: {e}"))

        return Ok(self._artifact(dest))

    def list_artifacts(self, run_id: str) -> list[Artifact]:
        run_dir = self.run_dir(run_id)
        if not run_dir.is_dir():
            return []
        return [
            self._artifact(p)
            for p in sorted(run_dir.iterdir())
            if p.is_dir() and not p.name.startswith(".")
        ]

    def download_all(self, run_id: str, dest: Path) -> Result[list[Path], PublishError]:
        """Copy every artifact of the run into ``dest``, one directory per artifact."""
        out: list[Path] = []
        try:
            dest.mkdir(parents=True, exist_ok=True)
            for artifact in self.list_artifacts(run_id):
                target = dest / artifact.name
                shutil.copytree(artifact.path, target, dirs_exist_ok=True)
                out.append(target)
        except OSError as e:
            return Err(PublishError(message=f"artifact download failed: {e}", hint=str(dest)))
        return Ok(out)
