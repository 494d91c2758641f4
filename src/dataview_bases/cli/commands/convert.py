"""Conversion commands: `dataview-bases convert` and `dataview-bases note`."""

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from dataview_bases.cli.app import app
from dataview_bases.converter import ERROR_PREFIX, create_converter

console = Console()


def _read_query(query: Optional[str], file: Optional[Path]) -> str:
    if query is not None:
        return query
    if file is not None:
        return file.read_text(encoding="utf-8")
    if not sys.stdin.isatty():
        return sys.stdin.read()
    typer.echo("Provide a query, --file, or pipe a query on stdin.", err=True)
    raise typer.Exit(2)


@app.command()
def convert(
    query: Annotated[Optional[str], typer.Argument(help="Dataview query text")] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", exists=True, dir_okay=False, help="Read the query from a file"),
    ] = None,
    global_filters: Annotated[
        bool,
        typer.Option("--global-filters", help="Emit filters at the top level instead of on the view"),
    ] = False,
):
    """Convert a Dataview TABLE query to Bases YAML."""
    text = _read_query(query, file)
    output = create_converter().convert_query(text, place_filters_in_view=not global_filters)
    typer.echo(output, nl=not output.endswith("\n"))
    if output.startswith(ERROR_PREFIX):
        raise typer.Exit(1)


@app.command()
def note(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Markdown note to scan")],
):
    """Convert every ```dataview block in a markdown note."""
    results = create_converter().process_note(path.read_text(encoding="utf-8"))
    if not results:
        console.print(f"No Dataview queries found in {path}")
        return

    failed = 0
    for result in results:
        title = f"{result['query_id']} (line {result['line_number']})"
        if result["status"] == "success":
            console.print(Panel(Syntax(result["yaml"], "yaml"), title=title, border_style="green"))
        else:
            failed += 1
            message = escape(f"[{result['error_type']}] {result['error']}")
            console.print(Panel(message, title=title, border_style="red"))

    logger.debug(f"Converted {len(results) - failed} of {len(results)} queries in {path}")
    if failed:
        raise typer.Exit(1)
