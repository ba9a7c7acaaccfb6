"""Package command - zip directories the way release archives are built."""

from __future__ import annotations

from pathlib import Path

import typer

from fci.core.errors import ErrorCode
from fci.core.result import Err
from fci.output.console import RichConsole
from fci.output.errors import pipeline_error_exit_code, print_pipeline_error
from fci.pipeline.packaging import package_directory


def package(
    dirs: list[Path] = typer.Argument(..., help="Directories to archive"),
    out: Path = typer.Option(Path("dist"), "--out", help="Output directory"),
) -> None:
    """Zip each directory into <out>/<name>.zip with paths flattened."""
    console = RichConsole()
    for src in dirs:
        if not src.is_dir():
            console.error(f"not a directory: {src}")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        result = package_directory(src, out)
        if isinstance(result, Err):
            print_pipeline_error(result.error, console)
            raise typer.Exit(code=pipeline_error_exit_code(result.error))
        console.success(str(result.value))
