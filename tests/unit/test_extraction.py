"""
Unit tests for worksheet parsing and row extraction.
"""

import pytest

from fieldops_ingest.batch.extraction import SheetExtractor, build_payload, find_natural_key
from fieldops_ingest.batch.readers import WorkbookReadError
from fieldops_ingest.core.errors import UnsupportedFileTypeError

from tests.fakes import HEADERS, build_csv, build_workbook, data_row, scorecard_rows


@pytest.mark.unit
class TestPayload:
    def test_blank_header_columns_are_dropped_and_empty_cells_are_none(self):
        payload = build_payload(["TechId", "", "Total Jobs", "Installs"], ["T1", "junk", "", "7"])
        assert payload == {"TechId": "T1", "Total Jobs": None, "Installs": "7"}
        assert list(payload) == ["TechId", "Total Jobs", "Installs"]

    def test_short_rows_are_padded(self):
        assert build_payload(["A", "B"], ["1"]) == {"A": "1", "B": None}

    def test_natural_key_lookup_is_header_normalized(self):
        assert find_natural_key({" techid ": " T9 "}, "TechId") == "T9"
        assert find_natural_key({"TechId": None}, "TechId") is None
        assert find_natural_key({"Name": "x"}, "TechId") is None


@pytest.mark.unit
class TestSheetExtractor:
    def test_parses_matching_workbook(self, test_profile):
        content = build_workbook({"Data": scorecard_rows()})
        parsed = SheetExtractor(test_profile).parse("keystone.xlsx", content)

        assert parsed.selection.matched
        assert parsed.region_name == "Keystone"
        assert parsed.row1_text == "Keystone Region Scorecard - Week 12"
        assert [r.row_num for r in parsed.rows] == [3, 4]
        assert parsed.footer_rows == 1
        first = parsed.rows[0]
        assert first.natural_key == "T1001"
        assert first.payload == {
            "TechId": "T1001",
            "TechName": "Ana Ruiz",
            "Supervisor": "Lee",
            "Total Jobs": "42",
            "Installs": "7",
        }

    def test_selects_matching_sheet_among_several(self, test_profile):
        content = build_workbook({
            "Cover": [["About this report"], ["Prepared by ops"]],
            "Data": scorecard_rows(),
        })
        parsed = SheetExtractor(test_profile).parse("multi.xlsx", content)
        assert parsed.selection.matched
        assert parsed.selection.sheet_name == "Data"
        assert parsed.selection.sheet_names == ["Cover", "Data"]

    def test_keyless_rows_are_extracted_but_flagged(self, test_profile):
        rows = [data_row("T1001"), data_row(None, "No Key"), data_row("T1003", "Cy")]
        content = build_workbook({"Data": scorecard_rows(rows=rows)})
        parsed = SheetExtractor(test_profile).parse("k.xlsx", content)
        assert len(parsed.rows) == 3
        assert [r.natural_key for r in parsed.keyed_rows] == ["T1001", "T1003"]
        assert [r.row_num for r in parsed.keyless_rows] == [4]

    def test_blank_rows_are_skipped_without_counting_as_footers(self, test_profile):
        grid = scorecard_rows(footer=False)
        grid.insert(3, [None] * len(HEADERS))
        parsed = SheetExtractor(test_profile).parse("gap.csv", build_csv(grid))
        assert [r.row_num for r in parsed.rows] == [3, 5]
        assert parsed.footer_rows == 0

    def test_unmatched_headers_extract_only_when_asked(self, test_profile):
        content = build_workbook({"Data": scorecard_rows(headers=["TechId", "Name", "Boss", "Jobs", "Inst"])})
        extractor = SheetExtractor(test_profile)

        preview = extractor.parse("bad.xlsx", content, extract_unmatched=True)
        assert not preview.selection.matched
        assert len(preview.rows) == 2

        commit = extractor.parse("bad.xlsx", content, extract_unmatched=False)
        assert commit.rows == []

    def test_region_miss(self, test_profile):
        content = build_workbook({"Data": scorecard_rows(title="Weekly scorecard")})
        parsed = SheetExtractor(test_profile).parse("x.xlsx", content)
        assert parsed.region_name is None
        assert parsed.region.normalized_input == "WEEKLY SCORECARD"

    def test_empty_workbook_sheet(self, test_profile):
        parsed = SheetExtractor(test_profile).parse("empty.csv", b"")
        assert not parsed.selection.matched
        assert parsed.rows == []

    def test_unsupported_extension(self, test_profile):
        with pytest.raises(UnsupportedFileTypeError):
            SheetExtractor(test_profile).parse("notes.pdf", b"%PDF")

    def test_unreadable_workbook(self, test_profile):
        with pytest.raises(WorkbookReadError):
            SheetExtractor(test_profile).parse("broken.xlsx", b"not a workbook")
