"""
Generic file reader dispatching on file extension (xlsx, csv).
"""

from collections.abc import Sequence
from pathlib import PurePosixPath

from fieldops_ingest.core.errors import UnsupportedFileTypeError

from .csv_reader import CSVReader
from .sheet import SheetData
from .workbook_reader import WorkbookReader

SUPPORTED_EXTENSIONS = (".xlsx", ".csv")


def file_extension(file_name: str) -> str:
    return PurePosixPath(file_name).suffix.lower()


class FileReader:
    """
    Generic file reader supporting multiple formats.
    """

    def __init__(self, allowed_extensions: Sequence[str] = SUPPORTED_EXTENSIONS):
        """
        Initialize file reader.

        Args:
            allowed_extensions: Extensions accepted by this reader
        """
        self.allowed_extensions = tuple(e for e in allowed_extensions if e in SUPPORTED_EXTENSIONS)
        self.workbook_reader = WorkbookReader()
        self.csv_reader = CSVReader()

    def check_supported(self, file_name: str) -> str:
        ext = file_extension(file_name)
        if ext not in self.allowed_extensions:
            raise UnsupportedFileTypeError(file_name, list(self.allowed_extensions))
        return ext

    def read(self, file_name: str, content: bytes) -> list[SheetData]:
        """
        Read file bytes into worksheet grids.

        Args:
            file_name: Original file name (extension selects the format)
            content: Raw file bytes

        Returns:
            List of SheetData, one per worksheet or CSV section

        Raises:
            UnsupportedFileTypeError: If the extension is not supported
            FileParseError: If the file cannot be parsed (WorkbookReadError, CSVReadError)
        """
        ext = self.check_supported(file_name)
        if ext == ".xlsx":
            return self.workbook_reader.read(content)
        return self.csv_reader.read(content, file_name)
