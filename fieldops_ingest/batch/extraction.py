"""
Worksheet parsing shared by preview and commit.

Reads a staged file, selects the worksheet by header fingerprint, detects the
region from the title row and extracts data rows with footer rows removed.
"""

from dataclasses import dataclass, field

from fieldops_ingest.core.matching.footer_filter import FooterRowFilter
from fieldops_ingest.core.matching.header_fingerprint import (
    HeaderFingerprintMatcher,
    SheetHeaders,
    SheetSelection,
    normalize_header,
)
from fieldops_ingest.core.matching.region_detector import RegionDetector, RegionMatch
from fieldops_ingest.core.profiles.profile_config import SourceProfile

from .readers.file_reader import FileReader
from .readers.sheet import SheetData


@dataclass
class ExtractedRow:
    """A data row keyed by the file's own headers."""

    row_num: int
    payload: dict[str, str | None]
    natural_key: str | None = None


@dataclass
class ParsedFile:
    file_name: str
    selection: SheetSelection
    sheet: SheetData | None
    row1_text: str = ""
    region: RegionMatch | None = None
    rows: list[ExtractedRow] = field(default_factory=list)
    footer_rows: int = 0

    @property
    def region_name(self) -> str | None:
        return self.region.region if self.region else None

    @property
    def keyed_rows(self) -> list[ExtractedRow]:
        return [r for r in self.rows if r.natural_key]

    @property
    def keyless_rows(self) -> list[ExtractedRow]:
        return [r for r in self.rows if not r.natural_key]


def build_payload(headers: list[str], cells: list[str]) -> dict[str, str | None]:
    """
    Map header text to cell text by column position.

    Blank header columns are dropped and empty cells become None. Insertion
    order follows the file's column order.
    """
    payload: dict[str, str | None] = {}
    for idx, header in enumerate(headers):
        name = header.strip()
        if not name:
            continue
        value = cells[idx] if idx < len(cells) else ""
        payload[name] = value or None
    return payload


def find_natural_key(payload: dict[str, str | None], key_header: str) -> str | None:
    wanted = normalize_header(key_header)
    for name, value in payload.items():
        if normalize_header(name) == wanted:
            return (value or "").strip() or None
    return None


class SheetExtractor:
    """
    Turns staged file bytes into a ParsedFile for one source profile.
    """

    def __init__(self, profile: SourceProfile, file_reader: FileReader | None = None,
                 footer_filter: FooterRowFilter | None = None):
        self.profile = profile
        self.file_reader = file_reader or FileReader(profile.allowed_extensions)
        self.footer_filter = footer_filter or FooterRowFilter()
        self.matcher = HeaderFingerprintMatcher(profile.expected_headers)
        self.region_detector = RegionDetector(profile.allowed_regions)

    def parse(self, file_name: str, content: bytes, extract_unmatched: bool = True) -> ParsedFile:
        """
        Parse a staged file.

        Args:
            file_name: Staged file name
            content: File bytes
            extract_unmatched: Also extract rows from the fallback sheet when
                no worksheet matched (preview estimates rows either way)

        Returns:
            ParsedFile; ``selection.matched`` tells whether the header gate passed

        Raises:
            UnsupportedFileTypeError: If the extension is not supported
            FileParseError: If the workbook or CSV cannot be parsed
        """
        sheets = self.file_reader.read(file_name, content)
        header_row = self.profile.header_row
        selection = self.matcher.select_sheet(
            [SheetHeaders(name=s.name, headers=s.headers(header_row)) for s in sheets]
        )
        sheet = next((s for s in sheets if s.name == selection.sheet_name), None)
        if sheet is None:
            return ParsedFile(file_name=file_name, selection=selection, sheet=None)

        row1_text = sheet.row_text(self.profile.title_row)
        parsed = ParsedFile(
            file_name=file_name,
            selection=selection,
            sheet=sheet,
            row1_text=row1_text,
            region=self.region_detector.detect(row1_text),
        )
        if selection.matched or extract_unmatched:
            self._extract(parsed, sheet, sheet.headers(header_row))
        return parsed

    def _extract(self, parsed: ParsedFile, sheet: SheetData, headers: list[str]) -> None:
        for row_num in range(self.profile.data_start_row, sheet.row_count + 1):
            cells = sheet.row(row_num)
            if not any(cells):
                continue
            if self.footer_filter.is_footer(cells):
                parsed.footer_rows += 1
                continue
            payload = build_payload(headers, cells)
            parsed.rows.append(
                ExtractedRow(
                    row_num=row_num,
                    payload=payload,
                    natural_key=find_natural_key(payload, self.profile.natural_key_header),
                )
            )
