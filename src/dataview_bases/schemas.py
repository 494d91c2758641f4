"""Output models describing a Bases configuration."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# A filter is either a single expression string or a one-key mapping
# {"and" | "or" | "not": [filter, ...]}.
Filter = Any


class SortSpec(BaseModel):
    """One sort key of a view."""

    column: str = Field(..., description="Property path or formula.<key> to sort on")
    direction: Literal["asc", "desc"] = Field("asc", description="Sort direction")


class BasesView(BaseModel):
    """A single view of a base. Field order matches the serialized key order."""

    type: str = Field("table", description="View layout")
    name: str = Field("Default view", description="View name")
    limit: Optional[int] = Field(None, description="Maximum number of rows")
    filters: Filter = Field(None, description="View-level filter")
    order: Optional[List[str]] = Field(None, description="Column order")
    group_by: Optional[str] = Field(None, description="Property to group rows by")
    sort: Optional[List[SortSpec]] = Field(None, description="Sort keys")


class BasesConfig(BaseModel):
    """Complete base definition produced from one Dataview query."""

    filters: Filter = Field(None, description="Global filter applied to every view")
    formulas: Optional[Dict[str, str]] = Field(None, description="Formula key -> expression")
    display: Optional[Dict[str, str]] = Field(None, description="Property path -> column label")
    views: List[BasesView] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict with absent keys omitted, ready for YAML encoding."""
        return self.model_dump(exclude_none=True)
