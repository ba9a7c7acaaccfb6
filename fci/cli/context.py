from __future__ import annotations

from dataclasses import dataclass

import typer

from fci.core.config import Config, load_config
from fci.core.errors import ErrorCode
from fci.core.result import Err
from fci.core.workspace import Project, StatePaths, detect_project
from fci.output.console import ConsoleProtocol, RichConsole, Style


@dataclass(frozen=True, slots=True)
class CLIContext:
    project: Project
    config: Config
    paths: StatePaths
    console: ConsoleProtocol


def build_context(*, quiet: bool = False) -> CLIContext:
    console = RichConsole(quiet=quiet)

    project_result = detect_project()
    if isinstance(project_result, Err):
        typer.echo(f"error: {project_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    project = project_result.value

    config_result = load_config(project.config_path)
    if isinstance(config_result, Err):
        error = config_result.error
        console.error(error.message)
        if error.hint:
            console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    config = config_result.value

    return CLIContext(
        project=project,
        config=config,
        paths=StatePaths.for_project(project, config),
        console=console,
    )
