"""
CSV reader producing a single section grid.
"""

import csv
import io
from pathlib import PurePosixPath

from .sheet import FileParseError, SheetData, cell_text


class CSVReadError(FileParseError):
    """Raised when bytes cannot be parsed as CSV."""


class CSVReader:
    """
    Reads a CSV export as one section named after the file stem.

    The layout is the same as a worksheet: title row, header row, data rows.
    """

    def __init__(self, delimiter: str = ",", encoding: str = "utf-8-sig"):
        """
        Initialize CSV reader.

        Args:
            delimiter: Field delimiter
            encoding: Text encoding (BOM tolerant by default)
        """
        self.delimiter = delimiter
        self.encoding = encoding

    def read(self, content: bytes, file_name: str) -> list[SheetData]:
        """
        Read CSV bytes.

        Raises:
            CSVReadError: If a row cannot be parsed (e.g. a field over the csv
                module's field size limit)
        """
        try:
            text = content.decode(self.encoding, errors="replace")
            reader = csv.reader(io.StringIO(text, newline=""), delimiter=self.delimiter)
            rows = [[cell_text(v) for v in row] for row in reader]
        except (csv.Error, UnicodeError, ValueError) as e:
            raise CSVReadError(f"Unable to read CSV: {e}") from e
        while rows and not any(rows[-1]):
            rows.pop()
        return [SheetData(name=PurePosixPath(file_name).stem or file_name, rows=rows)]
