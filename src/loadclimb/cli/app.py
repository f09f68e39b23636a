"""Main Typer application, entry point for the ``loadclimb`` CLI."""

from __future__ import annotations

import typer

from loadclimb import __version__
from loadclimb.cli.run import run_cmd

app = typer.Typer(
    name="loadclimb",
    help="Escalate concurrent HTTP load until the target times out.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Escalate concurrent GET requests against a URL.")(run_cmd)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"loadclimb {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """LoadClimb: find the concurrency at which a URL stops keeping up."""
