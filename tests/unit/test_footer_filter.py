"""
Unit tests for footer / total row classification.
"""

import pytest

from fieldops_ingest.core.matching.footer_filter import FooterRowFilter, classify_footer_row


@pytest.mark.unit
class TestFooterRowFilter:
    def test_data_row_is_kept(self):
        decision = classify_footer_row(["T1001", "Ana Ruiz", "Lee", "42"])
        assert not decision.is_footer
        assert decision.rule is None

    def test_empty_row(self):
        decision = classify_footer_row(["", None, "  "])
        assert decision.is_footer
        assert decision.rule == "empty"

    @pytest.mark.parametrize(
        "first_cell,phrase",
        [
            ("Grand Total", "GRAND TOTAL"),
            ("subtotal", "SUBTOTAL"),
            ("Sub  Total", "SUB TOTAL"),
            ("End of report", "END OF REPORT"),
            ("Summary", "SUMMARY"),
            ("Totals", "TOTALS"),
        ],
    )
    def test_marker_rows(self, first_cell, phrase):
        decision = classify_footer_row([first_cell, "", "", "84", "14", "3"])
        assert decision.is_footer
        assert decision.rule == "marker"
        assert decision.matched_phrase == phrase

    def test_page_marker_needs_following_text(self):
        decision = classify_footer_row(["Page 1 of 3", "", ""])
        assert decision.rule == "marker"
        assert decision.matched_phrase == "PAGE"

    def test_page_inside_a_word_is_not_a_marker(self):
        decision = classify_footer_row(["T1", "Ana Paget", "Lee"])
        assert not decision.is_footer

    def test_sparse_row(self):
        decision = classify_footer_row(["84", "", "", "14"])
        assert decision.is_footer
        assert decision.rule == "sparse"

    def test_custom_sparse_limit(self):
        assert not FooterRowFilter(sparse_limit=1).is_footer(["T1", "Ana"])

    def test_custom_markers(self):
        footer_filter = FooterRowFilter(markers=["CONFIDENTIAL"])
        assert footer_filter.is_footer(["Confidential - internal", "a", "b", "c"])
        assert not footer_filter.is_footer(["Total", "a", "b", "c"])
