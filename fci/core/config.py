"""Typed configuration loading and access.

The project configuration is a TOML file in the project root (see
``CONFIG_FILE_NAMES``). Every key is optional; the defaults describe the
forestry project itself.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeVar

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "ExecutionConfig",
    "MatrixConfig",
    "PathsConfig",
    "ProjectConfig",
    "PublishConfig",
    "ReleaseConfig",
    "ReleaseTarget",
    "ToolchainConfig",
    "DEFAULT_TAG_PATTERN",
    "load_config",
]

T = TypeVar("T")

DEFAULT_TAG_PATTERN = r"v\d+\.\d+\.\d+.*"

PublishHost = Literal["github", "local"]

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

DEFAULT_BUILD_OS = ("macos", "ubuntu", "windows")
DEFAULT_BUILD_TOOLCHAINS = ("msrv", "stable")


@dataclass(frozen=True, slots=True)
class ConfigurationError:
    """Malformed configuration, trigger pattern or matrix definition."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    name: str = "forestry"
    main_branch: str = "main"
    tag_pattern: str = DEFAULT_TAG_PATTERN

    @property
    def tag_regex(self) -> re.Pattern[str]:
        return re.compile(self.tag_pattern)


@dataclass(frozen=True, slots=True)
class ToolchainConfig:
    """Toolchain versions.

    ``msrv`` is the pinned minimum supported version; keep it in sync with
    the ``rust-version`` of the project's Cargo.toml.
    """

    msrv: str = "1.62"
    stable: str = "stable"
    provision: bool = True

    def resolve(self, alias: str) -> str:
        """Map the ``msrv``/``stable`` aliases to concrete versions."""
        if alias == "msrv":
            return self.msrv
        if alias == "stable":
            return self.stable
        return alias


@dataclass(frozen=True, slots=True)
class MatrixConfig:
    """Build & Test matrix axes."""

    os: tuple[str, ...] = DEFAULT_BUILD_OS
    toolchain: tuple[str, ...] = DEFAULT_BUILD_TOOLCHAINS


@dataclass(frozen=True, slots=True)
class ReleaseTarget:
    os: str
    target: str


DEFAULT_RELEASE_TARGETS = (
    ReleaseTarget(os="ubuntu", target="x86_64-unknown-linux-gnu"),
    ReleaseTarget(os="windows", target="x86_64-pc-windows-msvc"),
    ReleaseTarget(os="macos", target="x86_64-apple-darwin"),
)


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    targets: tuple[ReleaseTarget, ...] = DEFAULT_RELEASE_TARGETS


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    max_parallel: int = 4
    job_timeout_minutes: float = 60.0
    step_timeout_minutes: float = 30.0

    @property
    def job_timeout_seconds(self) -> float:
        return self.job_timeout_minutes * 60.0

    @property
    def step_timeout_seconds(self) -> float:
        return self.step_timeout_minutes * 60.0


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """State directory, relative to the project root."""

    state: str = ".fci"


@dataclass(frozen=True, slots=True)
class PublishConfig:
    host: PublishHost = "github"
    repo: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    build_matrix: MatrixConfig = field(default_factory=MatrixConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping.

        Raises:
            ValueError: If a value has the wrong type or is out of range.
        """
        project = _table(data, "project")
        toolchain = _table(data, "toolchain")
        gates = _table(data, "gates")
        build_and_test = _table(gates, "build_and_test", "gates.")
        release = _table(data, "release")
        execution = _table(data, "execution")
        paths = _table(data, "paths")
        publish = _table(data, "publish")

        name = _str(project, "project.name") or "forestry"
        if not _NAME_RE.match(name):
            raise ValueError(f"project.name is not a valid artifact prefix: {name!r}")

        tag_pattern = _str(project, "project.tag_pattern") or DEFAULT_TAG_PATTERN
        try:
            re.compile(tag_pattern)
        except re.error as e:
            raise ValueError(f"project.tag_pattern is not a valid regex: {e}") from e

        max_parallel = _typed(execution, "execution.max_parallel", get_int, "an integer")
        if max_parallel is not None and max_parallel < 1:
            raise ValueError("execution.max_parallel must be >= 1")

        job_timeout = _typed(execution, "execution.job_timeout_minutes", get_float, "a number")
        step_timeout = _typed(execution, "execution.step_timeout_minutes", get_float, "a number")
        for key, value in (
            ("job_timeout_minutes", job_timeout),
            ("step_timeout_minutes", step_timeout),
        ):
            if value is not None and value <= 0:
                raise ValueError(f"execution.{key} must be positive")

        host = _str(publish, "publish.host") or "github"
        if host not in ("github", "local"):
            raise ValueError(f"publish.host must be 'github' or 'local', got {host!r}")

        return cls(
            project=ProjectConfig(
                name=name,
                main_branch=_str(project, "project.main_branch") or "main",
                tag_pattern=tag_pattern,
            ),
            toolchain=ToolchainConfig(
                msrv=_str(toolchain, "toolchain.msrv") or "1.62",
                stable=_str(toolchain, "toolchain.stable") or "stable",
                provision=_bool_or(toolchain, "provision", True),
            ),
            build_matrix=MatrixConfig(
                os=_axis(build_and_test, "os", DEFAULT_BUILD_OS),
                toolchain=_axis(build_and_test, "toolchain", DEFAULT_BUILD_TOOLCHAINS),
            ),
            release=ReleaseConfig(targets=_release_targets(release)),
            execution=ExecutionConfig(
                max_parallel=max_parallel or 4,
                job_timeout_minutes=job_timeout or 60.0,
                step_timeout_minutes=step_timeout or 30.0,
            ),
            paths=PathsConfig(state=_str(paths, "paths.state") or ".fci"),
            publish=PublishConfig(
                host="local" if host == "local" else "github",
                repo=_str(publish, "publish.repo"),
            ),
        )


def _typed(
    table: Mapping[str, object],
    dotted: str,
    getter: Callable[[Mapping[str, object], str], T | None],
    expected: str,
) -> T | None:
    """Value of an optional key; present with the wrong type is an error."""
    key = dotted.rsplit(".", 1)[-1]
    if key not in table:
        return None
    value = getter(table, key)
    if value is None:
        raise ValueError(f"{dotted} must be {expected}")
    return value


def _str(table: Mapping[str, object], dotted: str) -> str | None:
    return _typed(table, dotted, get_str, "a non-empty string")


def _table(data: Mapping[str, object], key: str, prefix: str = "") -> StrDict:
    return _typed(data, f"{prefix}{key}", get_table, "a table") or {}


def _bool_or(table: Mapping[str, object], key: str, default: bool) -> bool:
    if key not in table:
        return default
    value = get_bool(table, key)
    if value is None:
        raise ValueError(f"{key} must be a boolean")
    return value


def _axis(table: Mapping[str, object], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if key not in table:
        return default
    values = get_str_list(table, key)
    if values is None:
        raise ValueError(f"gates.build_and_test.{key} must be a list of strings")
    values = [v.strip() for v in values]
    if not values or any(not v for v in values):
        raise ValueError(f"gates.build_and_test.{key} must contain non-empty strings")
    if len(set(values)) != len(values):
        raise ValueError(f"gates.build_and_test.{key} contains duplicates")
    return tuple(values)


def _release_targets(table: Mapping[str, object]) -> tuple[ReleaseTarget, ...]:
    if "targets" not in table:
        return DEFAULT_RELEASE_TARGETS

    raw = get_list(table, "targets")
    if raw is None or not raw:
        raise ValueError("release.targets must be a non-empty list")

    targets: list[ReleaseTarget] = []
    seen: set[str] = set()
    for item in raw:
        entry = as_str_dict(item)
        if entry is None:
            raise ValueError("release.targets entries must be tables")
        os_name = get_str(entry, "os")
        target = get_str(entry, "target")
        if os_name is None or target is None:
            raise ValueError("release.targets entries need 'os' and 'target'")
        if target in seen:
            raise ValueError(f"duplicate release target: {target}")
        seen.add(target)
        targets.append(ReleaseTarget(os=os_name, target=target))
    return tuple(targets)


def _parse_toml(path: Path) -> Result[StrDict, ConfigurationError]:
    """Parse a TOML file, handling I/O and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigurationError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigurationError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigurationError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigurationError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigurationError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigurationError]:
    """Load and validate configuration from a TOML file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigurationError(f"Invalid config: {e}", path=path))
