"""
Models for the commit stage: artifact lines, per-file outcomes, manifest.
"""

from datetime import date, datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field


class ArtifactRecord(BaseModel):
    """One line of a per-file ``.jsonl`` commit artifact."""

    source_system: str
    fiscal_month_anchor: date
    region: str | None = None
    row_num: int
    raw: dict[str, str | None]


class FileOutcome(BaseModel):
    """
    What happened to one staged file during commit.

    A failed outcome (``ok=False``) never aborts sibling files; the
    ``error`` field says why the file was not committed.
    """

    ok: bool
    file: str
    storage_path: str
    committed_path: str | None = None
    sheet_count: int | None = None
    sheet_names: list[str] = Field(default_factory=list)
    matched_sheet_name: str | None = None
    expected_header_fingerprint: str | None = None
    file_header_fingerprint: str | None = None
    header_match: bool | None = None
    region_detected: str | None = None
    data_rows: int = 0
    skipped_rows: int = 0
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class ManifestCounts(BaseModel):
    listed: int = 0
    committed_ok: int = 0
    failed: int = 0
    total_rows: int = 0
    skipped_rows: int = 0


class CommitManifest(BaseModel):
    """The ``manifest.json`` written under the commit prefix."""

    ok: bool
    batch_id: UUID
    upload_set_id: UUID
    source_system: str
    fiscal_month_anchor: date
    bucket: str
    source_prefix: str
    commit_prefix: str
    counts: ManifestCounts
    files: list[FileOutcome] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CommitResult(BaseModel):
    ok: bool
    batch_id: UUID
    upload_set_id: UUID
    status: str
    rows: int
    skipped_rows: int = 0
    commit_prefix: str
    manifest: str
    failed: int
    files: list[FileOutcome] = Field(default_factory=list)
