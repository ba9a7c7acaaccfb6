"""Toolchain provisioning through rustup."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ToolchainRequest:
    """A toolchain version plus the target and components a cell needs."""

    version: str
    target: str | None = None
    components: tuple[str, ...] = ()

    def argv(self) -> list[str]:
        cmd = ["rustup", "toolchain", "install", self.version, "--profile", "minimal"]
        if self.target:
            cmd += ["--target", self.target]
        for component in self.components:
            cmd += ["--component", component]
        return cmd

    def __str__(self) -> str:
        extras = [self.target] if self.target else []
        extras += self.components
        if extras:
            return f"{self.version} ({', '.join(extras)})"
        return self.version
