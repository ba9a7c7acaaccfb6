from __future__ import annotations

import os
from pathlib import Path

import typer

from fci import __version__
from fci.cli.commands.gate_cmd import gate
from fci.cli.commands.package_cmd import package
from fci.cli.commands.plan_cmd import plan
from fci.cli.commands.release_cmd import release_app
from fci.cli.commands.run_cmd import run
from fci.cli.commands.runs_cmd import runs_app
from fci.core.errors import ErrorCode
from fci.core.workspace import PROJECT_ROOT_ENV, check_dir


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(plan)
app.command()(run)
app.command()(gate)
app.command()(package)

# Sub-apps
app.add_typer(release_app, name="release")
app.add_typer(runs_app, name="runs")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or check_dir(root) is None:
            typer.echo(
                f"error: --project '{root}' is not a valid project (missing .fci.toml)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[PROJECT_ROOT_ENV] = str(root)


def main() -> None:
    app()
