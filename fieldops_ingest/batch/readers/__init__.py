"""
Spreadsheet readers.
"""

from .csv_reader import CSVReader, CSVReadError
from .file_reader import SUPPORTED_EXTENSIONS, FileReader, file_extension
from .sheet import FileParseError, SheetData, cell_text
from .workbook_reader import WorkbookReader, WorkbookReadError

__all__ = [
    "CSVReader",
    "CSVReadError",
    "FileParseError",
    "FileReader",
    "SUPPORTED_EXTENSIONS",
    "file_extension",
    "SheetData",
    "cell_text",
    "WorkbookReader",
    "WorkbookReadError",
]
