from __future__ import annotations

import typer

from cmr import __version__
from cmr.cli.commands.check import check
from cmr.cli.commands.in_cmd import in_
from cmr.cli.commands.out import out


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    invoke_without_command=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


# Commands
app.command()(check)
app.command("in")(in_)
app.command()(out)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Concourse resource for Helm charts in ChartMuseum and Harbor."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)


def main() -> None:
    app()
