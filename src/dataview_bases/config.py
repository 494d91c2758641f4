"""Configuration for Dataview to Bases conversion."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConverterConfig(BaseSettings):
    """Conversion settings, overridable with DATAVIEW_BASES_* environment variables."""

    view_name: str = Field(default="Default view", description="Name of the generated view")
    place_filters_in_view: bool = Field(
        default=True,
        description="Put the combined filter on the view instead of the top-level filters key",
    )
    max_nesting_depth: int = Field(
        default=32,
        gt=0,
        description="Maximum nesting of parentheses, brackets, calls and negations while parsing",
    )
    max_tree_depth: int = Field(
        default=200,
        gt=0,
        description="Maximum AST depth the transformer will walk",
    )
    strict_limit: bool = Field(
        default=False,
        description="Reject LIMIT amounts that are not integers instead of leaving the view unlimited",
    )
    log_level: str = Field(default="INFO", description="Log level for the CLI")

    model_config = SettingsConfigDict(
        env_prefix="DATAVIEW_BASES_",
        extra="ignore",
    )


@lru_cache
def get_config() -> ConverterConfig:
    """Default configuration, read once from the environment."""
    return ConverterConfig()
