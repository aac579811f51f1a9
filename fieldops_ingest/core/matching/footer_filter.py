"""
Footer / total row classification.

Known false positive: a genuine data row with two or fewer filled cells is
classified as a footer and dropped.
"""

import re
from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel

DEFAULT_FOOTER_MARKERS: tuple[str, ...] = (
    "GRAND TOTAL",
    "SUBTOTAL",
    "SUB TOTAL",
    "REPORT TOTAL",
    "END OF REPORT",
    "SUMMARY",
    "TOTALS",
    "TOTAL",
    "PAGE ",
)

SPARSE_CELL_LIMIT = 2

_WHITESPACE = re.compile(r"\s+")


class FooterDecision(BaseModel):
    is_footer: bool
    rule: Literal["empty", "marker", "sparse"] | None = None
    matched_phrase: str | None = None


def _normalize(text: str) -> str:
    # keep a trailing space so "PAGE " only matches as a word followed by more text
    return _WHITESPACE.sub(" ", text.replace("\u00a0", " ")).upper().lstrip()


class FooterRowFilter:
    """Classifies extracted rows as footer/total rows to be excluded."""

    def __init__(self, markers: Sequence[str] = DEFAULT_FOOTER_MARKERS, sparse_limit: int = SPARSE_CELL_LIMIT):
        self.markers = tuple(_normalize(m) for m in markers)
        self.sparse_limit = sparse_limit

    def classify(self, cells: Sequence[str | None]) -> FooterDecision:
        filled = [str(c).strip() for c in cells if c is not None and str(c).strip()]
        if not filled:
            return FooterDecision(is_footer=True, rule="empty")

        joined = _normalize(" ".join(filled))
        for marker in self.markers:
            if marker in joined:
                return FooterDecision(is_footer=True, rule="marker", matched_phrase=marker.strip())

        if len(filled) <= self.sparse_limit:
            return FooterDecision(is_footer=True, rule="sparse")

        return FooterDecision(is_footer=False)

    def is_footer(self, cells: Sequence[str | None]) -> bool:
        return self.classify(cells).is_footer


def classify_footer_row(cells: Sequence[str | None]) -> FooterDecision:
    return FooterRowFilter().classify(cells)
