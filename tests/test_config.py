"""Tests for converter settings."""

import pytest
from pydantic import ValidationError

from dataview_bases.config import ConverterConfig, get_config


class TestConverterConfig:
    """Test defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        for name in ("VIEW_NAME", "PLACE_FILTERS_IN_VIEW", "STRICT_LIMIT", "MAX_NESTING_DEPTH"):
            monkeypatch.delenv(f"DATAVIEW_BASES_{name}", raising=False)
        config = ConverterConfig()
        assert config.view_name == "Default view"
        assert config.place_filters_in_view is True
        assert config.max_nesting_depth == 32
        assert config.max_tree_depth == 200
        assert config.strict_limit is False

    def test_env_overrides(self, monkeypatch):
        """Test DATAVIEW_BASES_* variables override defaults."""
        monkeypatch.setenv("DATAVIEW_BASES_VIEW_NAME", "Tasks")
        monkeypatch.setenv("DATAVIEW_BASES_PLACE_FILTERS_IN_VIEW", "false")
        monkeypatch.setenv("DATAVIEW_BASES_STRICT_LIMIT", "true")
        config = ConverterConfig()
        assert config.view_name == "Tasks"
        assert config.place_filters_in_view is False
        assert config.strict_limit is True

    def test_explicit_values_win(self, monkeypatch):
        """Test init arguments take priority over the environment."""
        monkeypatch.setenv("DATAVIEW_BASES_VIEW_NAME", "Tasks")
        assert ConverterConfig(view_name="Books").view_name == "Books"

    def test_depth_must_be_positive(self):
        """Test depth limits are validated."""
        with pytest.raises(ValidationError):
            ConverterConfig(max_nesting_depth=0)

    def test_get_config_is_cached(self, monkeypatch):
        """Test get_config reads the environment once."""
        monkeypatch.setenv("DATAVIEW_BASES_VIEW_NAME", "First")
        first = get_config()
        monkeypatch.setenv("DATAVIEW_BASES_VIEW_NAME", "Second")
        assert get_config() is first
        assert get_config().view_name == "First"
