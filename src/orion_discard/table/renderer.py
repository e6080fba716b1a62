"""
Table renderers for the discard table.

A renderer only draws; the synchronizer owns the rows and their indexes.
"""

from typing import Any, Protocol

# (row key, column header) for the columns an operator sees. The record id
# and barcode travel with each row but are never shown.
VISIBLE_COLUMNS = (
    ("status", "Status"),
    ("field", "Field"),
    ("range", "Range"),
    ("row", "Row"),
    ("plot_id", "Plot ID"),
    ("subplot_id", "Subplot ID"),
    ("material_id", "MATID"),
)

HIDDEN_KEYS = ("id", "barcode")


class TableRenderer(Protocol):
    """Anything that can draw the whole table or redraw one row."""

    def render_all(self, rows: list[dict[str, Any]]) -> None:
        ...

    def render_row(self, position: int, row: dict[str, Any]) -> None:
        ...


class TextTableRenderer:
    """
    Plain-text renderer.

    Keeps one formatted line per row plus the hidden lookup keys of each row,
    so a single row can be redrawn in place.
    """

    def __init__(self, separator: str = " | "):
        self.separator = separator
        self.header = separator.join(title for _, title in VISIBLE_COLUMNS)
        self.lines: list[str] = []
        self.hidden: list[dict[str, str]] = []

    def format_row(self, row: dict[str, Any]) -> str:
        return self.separator.join(str(row.get(key) or "") for key, _ in VISIBLE_COLUMNS)

    def render_all(self, rows: list[dict[str, Any]]) -> None:
        self.lines = [self.format_row(row) for row in rows]
        self.hidden = [{key: str(row.get(key) or "") for key in HIDDEN_KEYS} for row in rows]

    def render_row(self, position: int, row: dict[str, Any]) -> None:
        if not 0 <= position < len(self.lines):
            raise IndexError(f"No rendered row at position {position}")
        self.lines[position] = self.format_row(row)
        self.hidden[position] = {key: str(row.get(key) or "") for key in HIDDEN_KEYS}

    def render(self) -> str:
        """The whole table as text."""
        return "\n".join([self.header, *self.lines])
