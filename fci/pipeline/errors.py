"""Pipeline error taxonomy.

Every failure a job can report is one of these frozen dataclasses. They
are carried in ``Err`` results and recorded on the failing cell; nothing
here is raised. ``cell`` is the failing cell's id when the error came from
a matrix cell.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fci.core.config import ConfigurationError

__all__ = [
    "BuildError",
    "CancelledError",
    "ConfigurationError",
    "DependencyPolicyError",
    "LintError",
    "PackagingError",
    "PipelineError",
    "PublishError",
    "TestError",
    "ToolchainError",
    "error_kind",
]


@dataclass(frozen=True, slots=True)
class ToolchainError:
    """Toolchain provisioning failed."""

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class BuildError:
    """Compilation (or binary installation) failed."""

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class TestError:
    """The test suite failed."""

    __test__ = False  # not a pytest test class

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class LintError:
    """Static analysis reported a warning, or formatting deviates."""

    message: str
    hint: str | None = None
    cell: str | None = None
    kind: Literal["lint", "format"] = "lint"


@dataclass(frozen=True, slots=True)
class DependencyPolicyError:
    """Disallowed license or known advisory in the locked dependency set."""

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class PackagingError:
    """Staging, artifact upload or archive creation failed."""

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class PublishError:
    """Release creation failed, including artifact-count mismatches."""

    message: str
    hint: str | None = None
    cell: str | None = None


@dataclass(frozen=True, slots=True)
class CancelledError:
    """Work that never ran because the run was cancelled."""

    message: str
    hint: str | None = None
    cell: str | None = None


PipelineError = (
    ConfigurationError
    | ToolchainError
    | BuildError
    | TestError
    | LintError
    | DependencyPolicyError
    | PackagingError
    | PublishError
    | CancelledError
)


def error_kind(error: PipelineError) -> str:
    """Stable snake_case name of an error, used in run records."""
    match error:
        case ConfigurationError():
            return "configuration"
        case ToolchainError():
            return "toolchain"
        case BuildError():
            return "build"
        case TestError():
            return "test"
        case LintError(kind="format"):
            return "format"
        case LintError():
            return "lint"
        case DependencyPolicyError():
            return "dependency_policy"
        case PackagingError():
            return "packaging"
        case PublishError():
            return "publish"
        case CancelledError():
            return "cancelled"
