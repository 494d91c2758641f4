"""Main CLI entry point for dataview-bases."""  # pragma: no cover

from dataview_bases.cli.app import app  # pragma: no cover

# Register commands
from dataview_bases.cli.commands import convert  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    # start the app
    app()
