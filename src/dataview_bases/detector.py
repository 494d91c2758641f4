"""
Detector for Dataview query blocks in markdown content.
"""

import re
from dataclasses import dataclass


@dataclass
class DataviewBlock:
    """A fenced ```dataview block; line numbers are 0-based."""

    query: str
    start_line: int
    end_line: int

    def __repr__(self) -> str:
        return f"DataviewBlock(lines={self.start_line}-{self.end_line})"


class DataviewDetector:
    """Finds Dataview code blocks in markdown notes."""

    # Opening fence, body, closing fence on a line of its own
    FENCED_BLOCK = re.compile(
        r"^[ \t]*```dataview[ \t]*\r?\n(?P<query>.*?)^[ \t]*```[ \t]*\r?$",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )

    @classmethod
    def detect_queries(cls, content: str) -> list[DataviewBlock]:
        """
        Find every ```dataview block in document order.

        A block without a closing fence is not reported.
        """
        return [
            DataviewBlock(
                query=match.group("query").rstrip("\r\n"),
                start_line=content.count("\n", 0, match.start()),
                end_line=content.count("\n", 0, match.end()),
            )
            for match in cls.FENCED_BLOCK.finditer(content)
        ]

    @classmethod
    def has_dataview_queries(cls, content: str) -> bool:
        """Check if content contains any Dataview code blocks."""
        return cls.FENCED_BLOCK.search(content) is not None
