"""
Excel workbook reader using openpyxl.
"""

import io
import zipfile
import zlib
from xml.etree.ElementTree import ParseError

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .sheet import FileParseError, SheetData, cell_text

# worksheets are parsed lazily in read-only mode, so damaged sheet XML or a
# truncated zip member only surfaces while rows are iterated
ROW_READ_ERRORS = (ParseError, zipfile.BadZipFile, zlib.error, EOFError, KeyError, ValueError, OSError)


class WorkbookReadError(FileParseError):
    """Raised when bytes cannot be opened or read as an .xlsx workbook."""


class WorkbookReader:
    """
    Reads every worksheet of an .xlsx workbook into SheetData grids.

    Formulas are read as their cached values (``data_only=True``).
    """

    def __init__(self, max_rows: int | None = None):
        """
        Initialize workbook reader.

        Args:
            max_rows: Optional cap on rows read per worksheet
        """
        self.max_rows = max_rows

    def sheet_names(self, content: bytes) -> list[str]:
        wb = self._open(content)
        try:
            return list(wb.sheetnames)
        finally:
            wb.close()

    def read(self, content: bytes) -> list[SheetData]:
        """
        Read workbook bytes.

        Args:
            content: Raw .xlsx bytes

        Returns:
            One SheetData per worksheet, in workbook order

        Raises:
            WorkbookReadError: If the bytes are not a readable workbook or a
                worksheet is damaged
        """
        wb = self._open(content)
        try:
            sheets = []
            for ws in wb.worksheets:
                try:
                    rows = [
                        [cell_text(v) for v in row]
                        for row in ws.iter_rows(max_row=self.max_rows, values_only=True)
                    ]
                except ROW_READ_ERRORS as e:
                    raise WorkbookReadError(f"Unable to read worksheet '{ws.title}': {e}") from e
                while rows and not any(rows[-1]):
                    rows.pop()
                sheets.append(SheetData(name=ws.title, rows=rows))
            return sheets
        finally:
            wb.close()

    @staticmethod
    def _open(content: bytes):
        try:
            return load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, ParseError, KeyError, OSError) as e:
            raise WorkbookReadError(f"Unable to read workbook: {e}") from e
