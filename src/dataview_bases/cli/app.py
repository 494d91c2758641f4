import sys
from typing import Optional

import typer
from loguru import logger

from dataview_bases.config import get_config


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import dataview_bases

        typer.echo(f"dataview-bases version: {dataview_bases.__version__}")
        raise typer.Exit()


app = typer.Typer(name="dataview-bases")


@app.callback()
def app_callback(
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output to stderr."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Convert Dataview queries to Obsidian Bases definitions."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else get_config().log_level)
