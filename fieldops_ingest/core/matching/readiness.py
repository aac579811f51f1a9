"""
Commit-readiness gate for previewed files.

Blocking reasons make a file not ready to commit. Warnings are signals only.
"""

from collections.abc import Sequence

from fieldops_ingest.core.matching.header_fingerprint import HeaderFingerprintMatcher
from fieldops_ingest.core.matching.region_detector import RegionDetector
from fieldops_ingest.core.models.preview import ReadinessMarks, ReadinessResult, ReadinessSignals

NO_HEADERS = "No headers found (row {header_row} appears empty)."
MISSING_HEADERS = "Missing required headers ({count})."
REGION_NOT_DETECTED = "Region not detected from row {title_row} text (signal only)."
ZERO_ROWS = "Estimated data rows is 0 (signal only)."


def evaluate_file_readiness(
    headers: Sequence[str],
    matcher: HeaderFingerprintMatcher,
    region_detector: RegionDetector,
    row1_text: str | None = None,
    data_rows_estimate: int | None = None,
    sheet_count: int | None = None,
    sheet_names: Sequence[str] | None = None,
    matched_sheet_name: str | None = None,
    title_row: int = 1,
    header_row: int = 2,
) -> ReadinessResult:
    """
    Evaluate whether a previewed file is ready to commit.

    Args:
        headers: Header row exactly as read from the file
        matcher: Matcher carrying the required headers
        region_detector: Detector used on the title row text
        row1_text: Joined text of the title row
        data_rows_estimate: Rows that survived footer filtering
        sheet_count: Number of worksheets in the file
        sheet_names: Worksheet names in workbook order
        matched_sheet_name: Worksheet selected by fingerprint, if any
        title_row: Row number of the title text (for messages)
        header_row: Row number of the header row (for messages)

    Returns:
        ReadinessResult with blocking reasons, warnings, UI marks and signals
    """
    blocking: list[str] = []
    warnings: list[str] = []

    header_count = sum(1 for h in headers if str(h or "").strip())
    if not header_count:
        blocking.append(NO_HEADERS.format(header_row=header_row))

    cov = matcher.coverage(headers)
    if not cov.header_coverage_ok:
        blocking.append(MISSING_HEADERS.format(count=len(cov.required_missing)))

    detected_region = region_detector.detect(row1_text).region if row1_text else None
    if not detected_region:
        warnings.append(REGION_NOT_DETECTED.format(title_row=title_row))

    if data_rows_estimate is not None and data_rows_estimate <= 0:
        warnings.append(ZERO_ROWS)

    commit_ready = not blocking

    if data_rows_estimate is None:
        rows_mark = "warn"
    else:
        rows_mark = "good" if data_rows_estimate > 0 else "warn"

    return ReadinessResult(
        commit_ready=commit_ready,
        blocking_reasons=blocking,
        warnings=warnings,
        ui=ReadinessMarks(
            overall="ok" if commit_ready else "bad",
            region="good" if detected_region else "warn",
            headers="good" if cov.header_coverage_ok else "bad",
            rows=rows_mark,
        ),
        signals=ReadinessSignals(
            header_count=header_count,
            required_count=cov.required_count,
            required_found_count=cov.required_found_count,
            required_missing=cov.required_missing,
            extras=cov.extras,
            header_coverage_ok=cov.header_coverage_ok,
            required_fingerprint=cov.required_fingerprint,
            file_fingerprint=cov.file_fingerprint,
            detected_region=detected_region,
            sheet_count=sheet_count,
            sheet_names=list(sheet_names) if sheet_names is not None else None,
            matched_sheet_name=matched_sheet_name,
            data_rows_estimate=data_rows_estimate,
        ),
    )
