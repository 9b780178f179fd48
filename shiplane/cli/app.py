from __future__ import annotations

import os
from pathlib import Path

import typer

from shiplane import __version__
from shiplane.cli.commands.check_env import check_env
from shiplane.cli.commands.lanes_cmd import changelog, refresh_dsyms, release, run_tests
from shiplane.cli.commands.workstation import workstation
from shiplane.cli.context import PROJECT_ENV_VAR
from shiplane.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Lanes
app.command()(release)
app.command("test")(run_tests)
app.command("refresh-dsyms")(refresh_dsyms)
app.command("check-env")(check_env)

# Utilities
app.command()(changelog)
app.command()(workstation)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Project root (default: current directory)",
    ),
) -> None:
    del version
    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --project '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[PROJECT_ENV_VAR] = str(root)


def main() -> None:
    app()
