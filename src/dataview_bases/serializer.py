"""YAML encoding of Bases configurations."""

import yaml

from dataview_bases.schemas import BasesConfig


def to_yaml(config: BasesConfig) -> str:
    """Serialize a base definition, keeping key order and omitting absent keys."""
    return yaml.dump(
        config.to_dict(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        Dumper=yaml.SafeDumper,
    )


def from_yaml(text: str) -> BasesConfig:
    """Load a base definition back into the output model."""
    return BasesConfig.model_validate(yaml.safe_load(text) or {})
