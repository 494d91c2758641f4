"""Pytest fixtures for dataview-bases tests."""

import pytest

from dataview_bases.config import ConverterConfig, get_config
from dataview_bases.parser import DataviewParser
from dataview_bases.transformer import DataviewToBasesTransformer


@pytest.fixture(autouse=True)
def clean_config_cache():
    """Make every test read settings from its own environment."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def config():
    return ConverterConfig()


@pytest.fixture
def transformer(config):
    return DataviewToBasesTransformer(config)


@pytest.fixture
def convert(transformer):
    """Parse and transform a query, returning the plain output dict."""

    def _convert(query_text: str, **kwargs):
        return transformer.transform(DataviewParser.parse(query_text), **kwargs).to_dict()

    return _convert


@pytest.fixture
def sample_queries():
    """Sample Dataview queries for testing."""
    return {
        "simple_table": "TABLE file.name, status",
        "table_with_alias": 'TABLE title AS "Project Name", status FROM "1. projects"',
        "complex_query": (
            'TABLE title, status, due FROM #project WHERE status != "archived" '
            "SORT due ASC LIMIT 10"
        ),
        "multiline": """TABLE file.name, file.size
   FROM "projects"
   WHERE completed = true
   SORT file.mtime DESC
   LIMIT 10""",
        "formulas": """TABLE (file.size / 1024) as "Size (KB)",
         (file.mtime.year) as Year,
         pages-read + " pages" as Progress
   FROM #book
   WHERE rating > 3""",
        "functions": """TABLE title, author, due
   FROM "tasks"
   WHERE contains(tags, "urgent") AND due < date(tomorrow)
   SORT due ASC""",
        "group_by": """TABLE count(file.name) as Count
   FROM "notes"
   WHERE file.ctime > date(today) - dur(7 days)
   GROUP BY file.folder""",
        "mixed_logic": """TABLE file.name, priority
   FROM #project or #task
   WHERE (status = "active" AND priority > 2) OR contains(file.name, "urgent")
   SORT priority DESC, file.name ASC""",
    }


@pytest.fixture
def markdown_with_dataview():
    """Markdown content with Dataview queries."""
    return """# My Note

Some content here.

```dataview
TABLE file.name, status
FROM "1. projects"
WHERE status = "active"
```

More content.

```dataview
LIST FROM #project
```

```dataview
TABLE status WHERE (status = "open"
```
"""
