"""Abstract build commands and their Cargo rendering.

Jobs describe *what* to run (``Build``, ``Test``, ``Lint``...); the
``CargoBackend`` turns each command into an argv. Every command that
resolves dependencies runs with ``--locked`` so the lockfile is never
implicitly upgraded.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

BuildScope = Literal["all-targets", "bins"]


@dataclass(frozen=True, slots=True)
class Build:
    scope: BuildScope = "all-targets"
    locked: bool = True
    release: bool = False
    target: str | None = None
    all_features: bool = False


@dataclass(frozen=True, slots=True)
class Test:
    __test__ = False  # not a pytest test class

    locked: bool = True
    release: bool = False
    target: str | None = None
    all_features: bool = False


@dataclass(frozen=True, slots=True)
class Lint:
    deny_warnings: bool = True


@dataclass(frozen=True, slots=True)
class FormatCheck:
    pass


@dataclass(frozen=True, slots=True)
class InstallAuditTool:
    tool: str = "cargo-deny"


@dataclass(frozen=True, slots=True)
class DependencyAudit:
    all_features: bool = True


@dataclass(frozen=True, slots=True)
class Install:
    staging_dir: Path
    locked: bool = True
    target: str | None = None
    all_features: bool = True


Command = Build | Test | Lint | FormatCheck | InstallAuditTool | DependencyAudit | Install


class CargoBackend:
    """Render commands as ``cargo`` invocations.

    ``toolchain`` selects a rustup toolchain through the ``cargo +<tc>``
    proxy syntax; None uses the default toolchain.
    """

    def __init__(self, *, cargo: str = "cargo", verbose: bool = True) -> None:
        self._cargo = cargo
        self._verbose = verbose

    def _base(self, toolchain: str | None) -> list[str]:
        cmd = [self._cargo]
        if toolchain:
            cmd.append(f"+{toolchain}")
        return cmd

    def argv(self, command: Command, *, toolchain: str | None = None) -> list[str]:
        cmd = self._base(toolchain)
        verbose = ["--verbose"] if self._verbose else []
        locked = ["--locked"]

        match command:
            case Build(scope=scope, locked=is_locked, release=release, target=target):
                cmd += ["build", f"--{scope}"]
                if command.all_features:
                    cmd.append("--all-features")
                if target:
                    cmd.append(f"--target={target}")
                if release:
                    cmd.append("--release")
                cmd += verbose + (locked if is_locked else [])
            case Test(locked=is_locked, release=release, target=target):
                cmd += ["test", "--all-targets"]
                if command.all_features:
                    cmd.append("--all-features")
                if target:
                    cmd.append(f"--target={target}")
                if release:
                    cmd.append("--release")
                cmd += verbose + (locked if is_locked else [])
            case Lint(deny_warnings=deny):
                cmd += ["clippy", "--all-targets", *locked, *verbose]
                if deny:
                    cmd += ["--", "--deny", "warnings"]
            case FormatCheck():
                cmd += ["fmt", "--all", "--check", *verbose]
            case InstallAuditTool(tool=tool):
                cmd += ["install", "--locked", tool]
            case DependencyAudit(all_features=all_features):
                cmd.append("deny")
                if all_features:
                    cmd.append("--all-features")
                cmd.append("check")
            case Install(staging_dir=staging, locked=is_locked, target=target):
                cmd += ["install", "--path=.", "--no-track", f"--root={staging}"]
                if command.all_features:
                    cmd.append("--all-features")
                if target:
                    cmd.append(f"--target={target}")
                cmd += (locked if is_locked else []) + verbose
        return cmd


def describe(argv: list[str]) -> str:
    """Printable form of an argv."""
    return " ".join(argv)
