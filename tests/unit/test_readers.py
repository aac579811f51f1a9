"""
Unit tests for workbook, CSV and dispatching file readers.
"""

from datetime import date, datetime, time
from decimal import Decimal

import pytest

from fieldops_ingest.batch.readers import (
    CSVReader,
    CSVReadError,
    FileParseError,
    FileReader,
    SheetData,
    WorkbookReader,
    WorkbookReadError,
    cell_text,
    file_extension,
)
from fieldops_ingest.core.errors import UnsupportedFileTypeError

from tests.fakes import build_csv, build_workbook, damaged_workbook, oversized_csv, scorecard_rows


@pytest.mark.unit
class TestCellText:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            ("  padded ", "padded"),
            (True, "TRUE"),
            (False, "FALSE"),
            (42, "42"),
            (42.0, "42"),
            (0.25, "0.25"),
            (Decimal("1.50"), "1.50"),
            (datetime(2025, 3, 21), "2025-03-21"),
            (datetime(2025, 3, 21, 8, 30), "2025-03-21T08:30:00"),
            (date(2025, 3, 21), "2025-03-21"),
            (time(8, 30), "08:30:00"),
            ("a\x00b", "ab"),
        ],
    )
    def test_rendering(self, value, expected):
        assert cell_text(value) == expected


@pytest.mark.unit
class TestSheetData:
    def test_rows_are_one_based_and_missing_rows_are_empty(self):
        sheet = SheetData(name="s", rows=[["Title"], ["A", "B"]])
        assert sheet.row(1) == ["Title"]
        assert sheet.row(0) == []
        assert sheet.row(9) == []

    def test_row_text_joins_non_empty_cells(self):
        sheet = SheetData(name="s", rows=[["", "Keystone", "", "Week 12"]])
        assert sheet.row_text(1) == "Keystone Week 12"

    def test_headers_keep_positions_and_trim_trailing_blanks(self):
        sheet = SheetData(name="s", rows=[[], ["TechId", "", "Total Jobs", "", ""]])
        assert sheet.headers(2) == ["TechId", "", "Total Jobs"]


@pytest.mark.unit
class TestWorkbookReader:
    def test_reads_every_sheet_in_order(self):
        content = build_workbook({"Data": scorecard_rows(), "Notes": [["hello"]]})
        sheets = WorkbookReader().read(content)
        assert [s.name for s in sheets] == ["Data", "Notes"]
        data = sheets[0]
        assert data.row_text(1) == "Keystone Region Scorecard - Week 12"
        assert data.headers(2)[0] == "TechId"
        assert data.row(3)[:4] == ["T1001", "Ana Ruiz", "Lee", "42"]

    def test_sheet_names(self):
        content = build_workbook({"One": [["x"]], "Two": [["y"]]})
        assert WorkbookReader().sheet_names(content) == ["One", "Two"]

    def test_max_rows(self):
        content = build_workbook({"Data": scorecard_rows()})
        assert WorkbookReader(max_rows=2).read(content)[0].row_count == 2

    def test_garbage_bytes_raise(self):
        with pytest.raises(WorkbookReadError):
            WorkbookReader().read(b"definitely not a zip file")

    def test_damaged_worksheet_raises_on_read(self):
        content = damaged_workbook()
        # the container opens, the worksheet XML fails while rows are iterated
        assert WorkbookReader().sheet_names(content) == ["Data"]
        with pytest.raises(WorkbookReadError, match="Unable to read worksheet 'Data'") as exc_info:
            WorkbookReader().read(content)
        assert isinstance(exc_info.value, FileParseError)


@pytest.mark.unit
class TestCSVReader:
    def test_single_section_named_after_file(self):
        sheets = CSVReader().read(build_csv(scorecard_rows()), "beltway_week12.csv")
        assert len(sheets) == 1
        assert sheets[0].name == "beltway_week12"
        assert sheets[0].row(2)[:2] == ["TechId", "TechName"]

    def test_bom_and_trailing_blank_lines(self):
        content = "\ufeffTitle\nA,B\n1,2\n,\n\n".encode("utf-8")
        sheet = CSVReader().read(content, "x.csv")[0]
        assert sheet.row(1) == ["Title"]
        assert sheet.row_count == 3

    def test_oversized_field_raises(self):
        with pytest.raises(CSVReadError, match="Unable to read CSV") as exc_info:
            CSVReader().read(oversized_csv(), "beltway.csv")
        assert isinstance(exc_info.value, FileParseError)


@pytest.mark.unit
class TestFileReader:
    def test_file_extension_is_lowercased(self):
        assert file_extension("Report.XLSX") == ".xlsx"

    def test_dispatches_on_extension(self):
        reader = FileReader()
        assert reader.read("a.csv", build_csv([["t"], ["h"]]))[0].name == "a"
        assert reader.read("a.xlsx", build_workbook({"S": [["t"]]}))[0].name == "S"

    def test_rejects_unsupported_extension(self):
        with pytest.raises(UnsupportedFileTypeError) as exc_info:
            FileReader().read("notes.txt", b"hello")
        assert exc_info.value.file_name == "notes.txt"

    def test_allowed_extensions_can_be_narrowed(self):
        with pytest.raises(UnsupportedFileTypeError):
            FileReader([".xlsx"]).check_supported("a.csv")
