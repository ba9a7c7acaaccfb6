"""Draft release creation.

Releases are always created as drafts; publishing one is a manual step on
the hosting side. Neither host implementation has a non-draft code path.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from fci.core.result import Err, Ok, Result
from fci.pipeline.errors import PublishError
from fci.pipeline.model import Release
from fci.platform.files import atomic_write_text
from fci.platform.process import run as run_process

GH_UPLOAD_TIMEOUT_SECONDS = 15 * 60.0


class ReleaseHost(Protocol):
    def create_draft(self, tag: str, files: Sequence[Path]) -> Result[Release, PublishError]: ...


def ensure_gh_available() -> Result[None, PublishError]:
    if shutil.which("gh") is None:
        return Err(
            PublishError(
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


class GhReleaseHost:
    """Creates draft GitHub releases with the ``gh`` CLI.

    ``gh`` handles authentication (``GH_TOKEN`` in CI, ``gh auth login``
    locally).
    """

    def __init__(self, *, project_root: Path, repo: str | None = None) -> None:
        self._project_root = project_root
        self._repo = repo

    def create_draft(self, tag: str, files: Sequence[Path]) -> Result[Release, PublishError]:
        available = ensure_gh_available()
        if isinstance(available, Err):
            return available

        cmd = ["gh", "release", "create", tag, *(str(f) for f in files)]
        cmd += ["--draft", "--title", tag]
        if self._repo:
            cmd += ["--repo", self._repo]

        result = run_process(cmd, cwd=self._project_root, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return Err(
                PublishError(
                    message=f"failed to create draft release {tag}",
                    hint=e.stderr.strip() or None,
                )
            )

        # gh prints the release URL on success
        lines = result.value.strip().splitlines()
        url = lines[-1].strip() if lines else None
        return Ok(Release(tag=tag, draft=True, files=tuple(f.name for f in files), url=url))


class DirectoryReleaseHost:
    """Keeps draft releases in a local directory: ``<root>/<tag>/``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def create_draft(self, tag: str, files: Sequence[Path]) -> Result[Release, PublishError]:
        dest = self._root / tag
        if dest.exists():
            return Err(
                PublishError(
                    message=f"release {tag} already exists",
                    hint=str(dest),
                )
            )

        try:
            dest.mkdir(parents=True)
            for f in files:
                shutil.copy2(f, dest / f.name)
            payload = {"tag": tag, "draft": True, "files": [f.name for f in files]}
            atomic_write_text(dest / "release.json", json.dumps(payload, indent=2) + "\n")
        except OSError as e:
            shutil.rmtree(dest, ignore_errors=True)
            return Err(PublishError(message=f"failed to create release {tag}: {e}"))

        return Ok(
            Release(
                tag=tag,
                draft=True,
                files=tuple(f.name for f in files),
                url=dest.resolve().as_uri(),
            )
        )
