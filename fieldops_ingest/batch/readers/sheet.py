"""
In-memory worksheet grid and cell text normalization shared by the readers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


class FileParseError(ValueError):
    """Raised when file bytes cannot be parsed into worksheet grids."""


def cell_text(value: Any) -> str:
    """
    Render a cell value as trimmed text.

    None becomes "", booleans become TRUE/FALSE, integral floats lose their
    ``.0``, dates are ISO formatted and NUL characters are removed.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "TRUE" if value else "FALSE"
    elif isinstance(value, float):
        text = str(int(value)) if value.is_integer() else repr(value)
    elif isinstance(value, (int, Decimal)):
        text = str(value)
    elif isinstance(value, datetime):
        text = value.date().isoformat() if value.time() == time(0) else value.isoformat()
    elif isinstance(value, (date, time)):
        text = value.isoformat()
    elif hasattr(value, "text"):
        # rich text / hyperlink style cell objects
        text = str(value.text or "")
    else:
        text = str(value)
    return text.replace("\x00", "").strip()


@dataclass
class SheetData:
    """
    One worksheet (or CSV section) as rows of cell text.

    Rows are addressed 1-based like spreadsheet row numbers. Missing rows and
    cells read as empty.
    """

    name: str
    rows: list[list[str]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def row(self, row_num: int) -> list[str]:
        if row_num < 1 or row_num > len(self.rows):
            return []
        return self.rows[row_num - 1]

    def row_text(self, row_num: int) -> str:
        """Non-empty cells of a row joined with single spaces."""
        return " ".join(c for c in self.row(row_num) if c).strip()

    def headers(self, header_row: int) -> list[str]:
        """Header row with column positions kept; blank header cells stay as ""."""
        cells = list(self.row(header_row))
        while cells and not cells[-1]:
            cells.pop()
        return cells
