"""Tests for the dataview-bases command line."""

import sys

import pytest
import yaml
from loguru import logger
from typer.testing import CliRunner

import dataview_bases
from dataview_bases.cli.main import app as cli_app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logger():
    """The CLI callback replaces loguru sinks with the runner's stderr."""
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestConvertCommand:
    """Test `dataview-bases convert`."""

    def test_convert_argument(self):
        """Test converting a query given on the command line."""
        result = runner.invoke(cli_app, ["convert", "TABLE status"])
        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert data["display"] == {"file.name": "Name", "status": "Status"}

    def test_convert_global_filters(self):
        """Test --global-filters moves filters to the top level."""
        result = runner.invoke(cli_app, ["convert", "--global-filters", "TABLE a WHERE a = 1"])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["filters"] == "a == 1"

    def test_convert_file(self, tmp_path):
        """Test reading the query from a file."""
        query_file = tmp_path / "query.txt"
        query_file.write_text('TABLE title\nFROM "books"\n', encoding="utf-8")
        result = runner.invoke(cli_app, ["convert", "--file", str(query_file)])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["views"][0]["filters"] == 'file.inFolder("books")'

    def test_convert_stdin(self):
        """Test reading the query from stdin."""
        result = runner.invoke(cli_app, ["convert"], input="TABLE a LIMIT 3")
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["views"][0]["limit"] == 3

    def test_convert_error_exit_code(self):
        """Test unsupported queries exit with status 1."""
        result = runner.invoke(cli_app, ["convert", "LIST"])
        assert result.exit_code == 1
        assert "# Error parsing Dataview query" in result.stdout

    def test_version(self):
        """Test --version."""
        result = runner.invoke(cli_app, ["--version"])
        assert result.exit_code == 0
        assert dataview_bases.__version__ in result.stdout


class TestNoteCommand:
    """Test `dataview-bases note`."""

    def test_note_with_failures(self, tmp_path, markdown_with_dataview):
        """Test every block is reported and failures set the exit code."""
        note = tmp_path / "note.md"
        note.write_text(markdown_with_dataview, encoding="utf-8")
        result = runner.invoke(cli_app, ["note", str(note)])
        assert result.exit_code == 1
        for query_id in ("dv-1", "dv-2", "dv-3"):
            assert query_id in result.stdout
        assert "unsupported" in result.stdout

    def test_note_all_ok(self, tmp_path):
        """Test a note whose blocks all convert."""
        note = tmp_path / "note.md"
        note.write_text("```dataview\nTABLE status\n```\n", encoding="utf-8")
        result = runner.invoke(cli_app, ["note", str(note)])
        assert result.exit_code == 0
        assert "dv-1" in result.stdout

    def test_note_without_queries(self, tmp_path):
        """Test a note without blocks."""
        note = tmp_path / "empty.md"
        note.write_text("# Nothing\n", encoding="utf-8")
        result = runner.invoke(cli_app, ["note", str(note)])
        assert result.exit_code == 0
        assert "No Dataview queries found" in result.stdout
