"""
Conversion facade: Dataview query text in, Bases YAML out.

This module ties the parser, transformer and serializer together and turns
failures into records or error comments that callers can show as they are.
"""

import time
from typing import Any, Dict, List, Optional

from loguru import logger

from dataview_bases.config import ConverterConfig, get_config
from dataview_bases.detector import DataviewDetector
from dataview_bases.errors import (
    DataviewError,
    DataviewSyntaxError,
    DataviewTransformError,
    UnsupportedConstructError,
)
from dataview_bases.parser import parse_query
from dataview_bases.schemas import BasesConfig
from dataview_bases.serializer import to_yaml
from dataview_bases.transformer import DataviewToBasesTransformer

ERROR_PREFIX = "# Error parsing Dataview query"


class DataviewConverter:
    """
    Convert Dataview queries, alone or embedded in notes, to Bases definitions.

    Every call builds its own transformer, so a converter can be shared freely.
    """

    def __init__(self, config: Optional[ConverterConfig] = None):
        self.config = config or get_config()
        self.detector = DataviewDetector()

    def convert(self, query_text: str, place_filters_in_view: Optional[bool] = None) -> BasesConfig:
        """
        Parse and transform one query.

        Raises:
            DataviewSyntaxError: If the query does not parse.
            UnsupportedConstructError: If the query is not a TABLE query.
        """
        query = parse_query(query_text, self.config).or_else_raise()
        return DataviewToBasesTransformer(self.config).transform(query, place_filters_in_view)

    def convert_to_yaml(self, query_text: str, place_filters_in_view: Optional[bool] = None) -> str:
        return to_yaml(self.convert(query_text, place_filters_in_view))

    def convert_query(self, query_text: str, place_filters_in_view: Optional[bool] = None) -> str:
        """Return YAML, or a single ``# Error ...`` comment line on failure."""
        try:
            return self.convert_to_yaml(query_text, place_filters_in_view)
        except DataviewError as e:
            logger.warning(f"Failed to convert Dataview query: {e}")
            return f"{ERROR_PREFIX}: {e}"
        except RecursionError:
            logger.warning("Dataview query is nested too deeply to convert")
            return f"{ERROR_PREFIX}: query is nested too deeply"

    def process_note(self, note_content: str) -> List[Dict[str, Any]]:
        """
        Convert every ```dataview block found in a note.

        Args:
            note_content: Markdown content of the note

        Returns:
            One result dictionary per block, in document order
        """
        blocks = self.detector.detect_queries(note_content)

        if not blocks:
            return []

        logger.debug(f"Found {len(blocks)} Dataview queries in note")

        return [
            self._convert_block(
                query_id=f"dv-{idx}",
                query_text=block.query,
                line_number=block.start_line + 1,  # Convert to 1-based
            )
            for idx, block in enumerate(blocks, 1)
        ]

    def _convert_block(self, query_id: str, query_text: str, line_number: int) -> Dict[str, Any]:
        start_time = time.time()
        record: Dict[str, Any] = {
            "query_id": query_id,
            "query_source": f"```dataview\n{query_text}\n```",
            "line_number": line_number,
        }

        try:
            record["yaml"] = self.convert_to_yaml(query_text)
            record["status"] = "success"

        except DataviewSyntaxError as e:
            logger.warning(f"Dataview syntax error in query {query_id}: {e}")
            record.update(status="error", error=str(e), error_type="syntax")

        except UnsupportedConstructError as e:
            logger.warning(f"Unsupported Dataview construct in query {query_id}: {e}")
            record.update(status="error", error=str(e), error_type="unsupported")

        except DataviewTransformError as e:
            logger.warning(f"Dataview transform error in query {query_id}: {e}")
            record.update(status="error", error=str(e), error_type="transform")

        except RecursionError:
            logger.warning(f"Dataview query {query_id} is nested too deeply to convert")
            record.update(status="error", error="Query is nested too deeply to convert", error_type="transform")

        record["execution_time_ms"] = int((time.time() - start_time) * 1000)
        return record


def create_converter(config: Optional[ConverterConfig] = None) -> DataviewConverter:
    """
    Factory function to create DataviewConverter instance.

    Args:
        config: Optional settings; defaults are read from the environment

    Returns:
        Configured DataviewConverter instance
    """
    return DataviewConverter(config)


def convert_query(query_text: str, place_filters_in_view: bool = True) -> str:
    """Convert a Dataview TABLE query to Bases YAML, or an error comment line."""
    return create_converter().convert_query(query_text, place_filters_in_view)
