"""
Header fingerprint matching.

A worksheet's header row is reduced to a fingerprint (normalized header
names joined with ``|``). The strict match is a full string comparison of
fingerprints, so an extra, missing or reordered column is a mismatch. The
looser coverage check only asks whether every expected header is present.
"""

import re
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

FINGERPRINT_DELIMITER = "|"

_WHITESPACE = re.compile(r"\s+")


class SheetHeaders(BaseModel):
    """Header row of one worksheet (or CSV section) as read from the file."""

    name: str
    headers: list[str] = Field(default_factory=list)


class SheetSelection(BaseModel):
    """Result of choosing a worksheet by header fingerprint."""

    matched: bool
    sheet_name: str | None = None
    headers: list[str] = Field(default_factory=list)
    file_fingerprint: str = ""
    expected_fingerprint: str
    sheet_count: int = 0
    sheet_names: list[str] = Field(default_factory=list)


class HeaderCoverage(BaseModel):
    required_count: int
    required_found_count: int
    required_missing: list[str] = Field(default_factory=list)
    extras: list[str] = Field(default_factory=list)
    header_coverage_ok: bool
    required_fingerprint: str
    file_fingerprint: str


def normalize_header(value: str | None) -> str:
    """Trim, collapse internal whitespace (including NBSP) and lowercase."""
    s = str(value or "").replace("\u00a0", " ")
    return _WHITESPACE.sub(" ", s).strip().lower()


def fingerprint(headers: Iterable[str | None]) -> str:
    """Join normalized, non-empty headers with the fingerprint delimiter."""
    return FINGERPRINT_DELIMITER.join(n for n in (normalize_header(h) for h in headers) if n)


class HeaderFingerprintMatcher:
    """
    Selects the worksheet whose header row matches an expected, ordered list.

    Example:
        >>> matcher = HeaderFingerprintMatcher(["TechId", "Total Jobs"])
        >>> matcher.matches(["techid", "total   jobs"])
        True
        >>> matcher.matches(["Total Jobs", "TechId"])
        False
    """

    def __init__(self, expected_headers: Sequence[str]):
        if not expected_headers:
            raise ValueError("expected_headers must not be empty")
        self.expected_headers = list(expected_headers)
        self.expected_fingerprint = fingerprint(self.expected_headers)

    def matches(self, headers: Sequence[str | None]) -> bool:
        return fingerprint(headers) == self.expected_fingerprint

    def select_sheet(self, sheets: Sequence[SheetHeaders]) -> SheetSelection:
        """
        Return the first sheet whose fingerprint equals the expected one.

        Sheets with an empty header row are skipped. When nothing matches,
        the first sheet's headers are returned with ``matched=False`` so the
        caller can show what the file actually contains.
        """
        names = [s.name for s in sheets]
        for sheet in sheets:
            file_fp = fingerprint(sheet.headers)
            if not file_fp:
                continue
            if file_fp == self.expected_fingerprint:
                return SheetSelection(
                    matched=True,
                    sheet_name=sheet.name,
                    headers=list(sheet.headers),
                    file_fingerprint=file_fp,
                    expected_fingerprint=self.expected_fingerprint,
                    sheet_count=len(sheets),
                    sheet_names=names,
                )

        first = sheets[0] if sheets else None
        return SheetSelection(
            matched=False,
            sheet_name=first.name if first else None,
            headers=list(first.headers) if first else [],
            file_fingerprint=fingerprint(first.headers) if first else "",
            expected_fingerprint=self.expected_fingerprint,
            sheet_count=len(sheets),
            sheet_names=names,
        )

    def coverage(self, headers: Sequence[str | None]) -> HeaderCoverage:
        """Required-subset check: every expected header present, extras tolerated."""
        present = {n for n in (normalize_header(h) for h in headers) if n}
        expected_norm = [normalize_header(h) for h in self.expected_headers]

        missing = [
            original
            for original, norm in zip(self.expected_headers, expected_norm)
            if norm not in present
        ]
        expected_set = set(expected_norm)
        extras = [
            str(h).strip()
            for h in headers
            if normalize_header(h) and normalize_header(h) not in expected_set
        ]

        return HeaderCoverage(
            required_count=len(self.expected_headers),
            required_found_count=len(self.expected_headers) - len(missing),
            required_missing=missing,
            extras=extras,
            header_coverage_ok=not missing,
            required_fingerprint=self.expected_fingerprint,
            file_fingerprint=fingerprint(headers),
        )
