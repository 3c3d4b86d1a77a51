from __future__ import annotations

import typer

from autorel import __version__
from autorel.cli.commands.release_cmd import notes, plan, run

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    invoke_without_command=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command()(plan)
app.command()(notes)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()
