"""Project detection and state paths.

A project root is the directory holding the fci config file. Candidate
file names are checked in priority order; the first one found wins.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .result import Err, Ok, Result

__all__ = [
    "CONFIG_FILE_NAMES",
    "PROJECT_ROOT_ENV",
    "Project",
    "ProjectError",
    "StatePaths",
    "check_dir",
    "detect_project",
    "find_project_upward",
]

CONFIG_FILE_NAMES = (".fci.toml", "fci.toml")
PROJECT_ROOT_ENV = "FCI_PROJECT_ROOT"


@dataclass(frozen=True)
class ProjectError:
    """Error when the project cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Project:
    """A detected project: its root directory and config file."""

    root: Path
    config_path: Path

    @property
    def lockfile(self) -> Path:
        return self.root / "Cargo.lock"

    def __str__(self) -> str:
        return str(self.root)


@dataclass(frozen=True, slots=True)
class StatePaths:
    """Directories below the project's state dir (default ``.fci/``)."""

    state_dir: Path

    @classmethod
    def for_project(cls, project: Project, config: Config) -> StatePaths:
        return cls(state_dir=project.root / config.paths.state)

    @property
    def runs_dir(self) -> Path:
        return self.state_dir / "runs"

    @property
    def artifacts_dir(self) -> Path:
        return self.state_dir / "artifacts"

    @property
    def work_dir(self) -> Path:
        return self.state_dir / "work"

    @property
    def cache_dir(self) -> Path:
        return self.state_dir / "cache"

    @property
    def releases_dir(self) -> Path:
        return self.state_dir / "releases"


def check_dir(directory: Path) -> Path | None:
    """Return the config file in ``directory``, or None."""
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_project_upward(start: Path) -> Project | None:
    """Search ``start`` and then each parent for a config file."""
    for parent in (start, *start.parents):
        config_path = check_dir(parent)
        if config_path is not None:
            return Project(root=parent, config_path=config_path)
    return None


def detect_project(
    *,
    start_dir: Path | None = None,
    env_var: str = PROJECT_ROOT_ENV,
) -> Result[Project, ProjectError]:
    """Detect the project root.

    Detection order:
    1. ``FCI_PROJECT_ROOT`` environment variable (if set it must be valid)
    2. Search upward from start_dir (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        config_path = check_dir(env_path) if env_path.is_dir() else None
        if config_path is None:
            return Err(
                ProjectError(
                    message=f"${env_var} is set to '{env_value}' but it has no fci config",
                    searched_from=env_path if env_path.is_dir() else None,
                )
            )
        return Ok(Project(root=env_path, config_path=config_path))

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_project_upward(search_start)
    if found is None:
        names = ", ".join(CONFIG_FILE_NAMES)
        return Err(
            ProjectError(
                message=f"Could not find project config ({names})",
                searched_from=search_start,
            )
        )
    return Ok(found)
