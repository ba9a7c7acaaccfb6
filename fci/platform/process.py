"""Subprocess execution with Result-based error handling.

Every cargo, rustup and gh invocation goes through ``run``: output is
captured, failures come back as a ``ProcessError`` carrying the exit code,
both output streams and whether the timeout fired. Nothing here raises.

Usage:
    match run(["cargo", "--version"], cwd=root, timeout=60):
        case Ok(stdout):
            console.print(stdout)
        case Err(error):
            console.error(str(error))
            console.print(error.tail(), Style.DIM)
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from fci.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

# returncode of a process that never started or was killed by the timeout
NO_EXIT_CODE = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not start, exited non-zero or timed out."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        if self.timed_out:
            return f"{shown} timed out"
        return f"{shown} failed (exit {self.returncode})"

    def tail(self, lines: int = 20) -> str:
        """Last lines of combined output, for error hints."""
        text = "\n".join(part for part in (self.stdout, self.stderr) if part.strip())
        return "\n".join(text.strip().splitlines()[-lines:])


def _decoded(data: str | bytes | None) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data or ""


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    ``env`` replaces the whole environment when given. A ``timeout`` of
    None waits forever.
    """
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command,
                NO_EXIT_CODE,
                _decoded(e.stdout),
                f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(ProcessError(command, NO_EXIT_CODE, "", str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(command, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
