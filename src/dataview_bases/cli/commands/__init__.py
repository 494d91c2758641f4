"""CLI commands for dataview-bases."""

from dataview_bases.cli.commands import convert

__all__ = ["convert"]
