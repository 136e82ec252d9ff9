from typing import Optional

import typer

from screenforge import __version__
from screenforge.config import init_cli_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        typer.echo(f"screenforge version: {__version__}")
        raise typer.Exit()


app = typer.Typer(name="screenforge", no_args_is_help=True)


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """screenforge - editable UI screens generated from OpenAPI descriptions."""
    init_cli_logging()
