"""
Models for the read-only parse/preview stage and the readiness gate.
"""

from typing import Literal

from pydantic import BaseModel, Field

UiMark = Literal["ok", "good", "warn", "bad"]


class ReadinessMarks(BaseModel):
    overall: UiMark
    region: UiMark
    headers: UiMark
    rows: UiMark


class ReadinessSignals(BaseModel):
    header_count: int = 0
    required_count: int = 0
    required_found_count: int = 0
    required_missing: list[str] = Field(default_factory=list)
    extras: list[str] = Field(default_factory=list)
    header_coverage_ok: bool = False
    required_fingerprint: str = ""
    file_fingerprint: str = ""
    detected_region: str | None = None
    sheet_count: int | None = None
    sheet_names: list[str] | None = None
    matched_sheet_name: str | None = None
    data_rows_estimate: int | None = None


class ReadinessResult(BaseModel):
    """
    Commit-readiness verdict for one previewed file.

    Only blocking reasons make a file not ready; warnings are advisory
    signals (region not detected, zero estimated rows).
    """

    commit_ready: bool
    blocking_reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    ui: ReadinessMarks
    signals: ReadinessSignals


class FilePreview(BaseModel):
    """Per-file diagnostics returned by the previewer."""

    ok: bool
    file: str
    storage_path: str
    sheet_count: int | None = None
    sheet_names: list[str] = Field(default_factory=list)
    expected_header_fingerprint: str | None = None
    file_header_fingerprint: str | None = None
    header_match: bool = False
    matched_sheet_name: str | None = None
    row1_text: str | None = None
    headers: list[str] = Field(default_factory=list)
    region_detected: str | None = None
    data_rows_estimate: int | None = None
    readiness: ReadinessResult | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class PreviewCounts(BaseModel):
    listed: int = 0
    parsed_ok: int = 0
    failed: int = 0


class PreviewResult(BaseModel):
    ok: bool
    bucket: str
    prefix: str
    counts: PreviewCounts
    files: list[FilePreview] = Field(default_factory=list)


class FileValidation(BaseModel):
    """Outcome of the single-worksheet guardrail for one uploaded file."""

    ok: bool
    kind: Literal["csv", "xlsx"]
    single_sheet: Literal["pass", "fail", "n/a"]
    sheet_count: int | None = None
    sheet_names: list[str] = Field(default_factory=list)
    error: str | None = None
