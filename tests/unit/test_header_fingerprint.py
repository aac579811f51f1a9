"""
Unit tests for header fingerprint matching.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from fieldops_ingest.core.matching.header_fingerprint import (
    HeaderFingerprintMatcher,
    SheetHeaders,
    fingerprint,
    normalize_header,
)

EXPECTED = ["TechId", "TechName", "Total Jobs"]


@pytest.mark.unit
class TestNormalization:
    def test_normalize_header(self):
        assert normalize_header("  Total   Jobs ") == "total jobs"

    def test_none_header(self):
        assert normalize_header(None) == ""

    def test_fingerprint_drops_empty_headers(self):
        assert fingerprint(["TechId", "", None, " Total Jobs"]) == "techid|total jobs"

    @given(st.lists(st.text(alphabet="abcXYZ 12", min_size=1), min_size=1, max_size=8))
    def test_fingerprint_ignores_case_and_padding(self, headers):
        padded = [f"  {h.upper()}  " for h in headers]
        assert fingerprint(padded) == fingerprint(headers)


@pytest.mark.unit
class TestHeaderFingerprintMatcher:
    def test_requires_expected_headers(self):
        with pytest.raises(ValueError):
            HeaderFingerprintMatcher([])

    def test_exact_match_tolerates_case_and_whitespace(self):
        matcher = HeaderFingerprintMatcher(EXPECTED)
        assert matcher.matches(["techid", " TechName", "total   jobs"])

    def test_reordered_headers_do_not_match(self):
        matcher = HeaderFingerprintMatcher(EXPECTED)
        assert not matcher.matches(["TechName", "TechId", "Total Jobs"])

    def test_extra_header_does_not_match(self):
        matcher = HeaderFingerprintMatcher(EXPECTED)
        assert not matcher.matches(EXPECTED + ["Bonus"])

    def test_select_sheet_picks_first_matching_sheet(self):
        matcher = HeaderFingerprintMatcher(EXPECTED)
        selection = matcher.select_sheet([
            SheetHeaders(name="Notes", headers=["Comment"]),
            SheetHeaders(name="Empty", headers=[]),
            SheetHeaders(name="Data", headers=EXPECTED),
            SheetHeaders(name="Copy", headers=EXPECTED),
        ])
        assert selection.matched
        assert selection.sheet_name == "Data"
        assert selection.sheet_count == 4
        assert selection.sheet_names == ["Notes", "Empty", "Data", "Copy"]
        assert selection.file_fingerprint == selection.expected_fingerprint

    def test_select_sheet_falls_back_to_first_sheet(self):
        matcher = HeaderFingerprintMatcher(EXPECTED)
        selection = matcher.select_sheet([
            SheetHeaders(name="Sheet1", headers=["TechId", "Name"]),
            SheetHeaders(name="Sheet2", headers=["Other"]),
        ])
        assert not selection.matched
        assert selection.sheet_name == "Sheet1"
        assert selection.headers == ["TechId", "Name"]
        assert selection.file_fingerprint == "techid|name"

    def test_select_sheet_without_sheets(self):
        selection = HeaderFingerprintMatcher(EXPECTED).select_sheet([])
        assert not selection.matched
        assert selection.sheet_name is None
        assert selection.sheet_count == 0

    def test_coverage_reports_missing_and_extras(self):
        coverage = HeaderFingerprintMatcher(EXPECTED).coverage(["Total Jobs", "TechId", "Region"])
        assert not coverage.header_coverage_ok
        assert coverage.required_count == 3
        assert coverage.required_found_count == 2
        assert coverage.required_missing == ["TechName"]
        assert coverage.extras == ["Region"]

    def test_coverage_accepts_reordered_superset(self):
        coverage = HeaderFingerprintMatcher(EXPECTED).coverage(["Total Jobs", "TechName", "TechId", "x"])
        assert coverage.header_coverage_ok
        assert coverage.required_missing == []
