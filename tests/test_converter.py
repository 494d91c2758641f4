"""Tests for the conversion facade."""

import pytest
import yaml

from dataview_bases.config import ConverterConfig
from dataview_bases.converter import ERROR_PREFIX, DataviewConverter, convert_query, create_converter
from dataview_bases.errors import DataviewSyntaxError, UnsupportedConstructError


class TestConvert:
    """Test single-query conversion."""

    def test_convert_returns_model(self):
        """Test convert returns a BasesConfig."""
        config = create_converter().convert("TABLE status")
        assert config.display == {"file.name": "Name", "status": "Status"}

    def test_convert_raises_syntax_error(self):
        """Test malformed queries raise."""
        with pytest.raises(DataviewSyntaxError, match=r"Unmatched '\('"):
            create_converter().convert("TABLE a WHERE (")

    def test_convert_raises_unsupported(self):
        """Test non-TABLE queries raise."""
        with pytest.raises(UnsupportedConstructError):
            create_converter().convert("TASK")

    def test_converter_uses_its_config(self):
        """Test an explicit config is honored."""
        converter = DataviewConverter(ConverterConfig(view_name="Reading", place_filters_in_view=False))
        data = yaml.safe_load(converter.convert_to_yaml("TABLE a FROM #book"))
        assert data["filters"] == 'file.hasTag("book")'
        assert data["views"][0]["name"] == "Reading"


class TestConvertQuery:
    """Test the string-in, string-out entry point."""

    def test_success_is_yaml(self):
        """Test a valid query converts to YAML."""
        data = yaml.safe_load(convert_query('TABLE status WHERE status != "done"'))
        assert data["views"][0]["filters"] == 'status != "done"'

    def test_global_filters(self):
        """Test place_filters_in_view=False."""
        data = yaml.safe_load(convert_query("TABLE a WHERE a = 1", place_filters_in_view=False))
        assert data["filters"] == "a == 1"
        assert "filters" not in data["views"][0]

    def test_unsupported_is_error_comment(self):
        """Test errors become one comment line."""
        output = convert_query("LIST")
        assert output == (
            f"{ERROR_PREFIX}: LIST queries are not supported. Please use TABLE queries instead."
        )

    def test_syntax_error_is_error_comment(self):
        """Test syntax errors carry their location."""
        output = convert_query("TABLE a WHERE")
        assert output.startswith(ERROR_PREFIX)
        assert "at line 1" in output

    def test_deep_nesting_is_error_comment(self):
        """Test pathological nesting does not crash."""
        output = convert_query("TABLE " + "(" * 500 + "a" + ")" * 500)
        assert output.startswith(ERROR_PREFIX)
        assert "Maximum nesting depth" in output


class TestProcessNote:
    """Test converting every block of a note."""

    def test_records(self, markdown_with_dataview):
        """Test one record per block with status and error type."""
        results = create_converter().process_note(markdown_with_dataview)
        assert [r["query_id"] for r in results] == ["dv-1", "dv-2", "dv-3"]
        assert [r["line_number"] for r in results] == [5, 13, 17]
        assert [r["status"] for r in results] == ["success", "error", "error"]

        ok, unsupported, broken = results
        assert 'file.inFolder("1. projects")' in yaml.safe_load(ok["yaml"])["views"][0]["filters"]["and"]
        assert ok["query_source"].startswith("```dataview\nTABLE file.name")
        assert unsupported["error_type"] == "unsupported"
        assert "LIST queries are not supported" in unsupported["error"]
        assert broken["error_type"] == "syntax"
        assert "Unmatched" in broken["error"]
        assert all(isinstance(r["execution_time_ms"], int) for r in results)

    def test_note_without_queries(self):
        """Test notes without blocks give no records."""
        assert create_converter().process_note("# Nothing here") == []

    def test_long_property_chain_converts(self):
        """Test a 1500-segment property chain in a note converts cleanly."""
        chain = "a" + ".b" * 1500
        (record,) = create_converter().process_note(f"```dataview\nTABLE {chain}\n```\n")
        assert record["status"] == "success"
        assert chain in yaml.safe_load(record["yaml"])["display"]

    def test_recursion_error_is_transform_error(self, monkeypatch):
        """Test a block that exhausts the stack is recorded, not raised."""
        converter = create_converter()

        def exhausted(query_text):
            raise RecursionError("maximum recursion depth exceeded")

        monkeypatch.setattr(converter, "convert_to_yaml", exhausted)
        (record,) = converter.process_note("```dataview\nTABLE a\n```\n")
        assert record["status"] == "error"
        assert record["error_type"] == "transform"
        assert "nested too deeply" in record["error"]
