"""
Models for the upload (staging) stage.
"""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field


class IncomingFile(BaseModel):
    """A raw file handed to the stager (e.g. one part of a multipart upload)."""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


class StagedFile(BaseModel):
    """Per-file storage outcome of an upload."""

    ok: bool
    original_filename: str
    content_type: str
    bytes: int = Field(0, ge=0)
    storage_path: str | None = None
    error: str | None = None


class UploadCounts(BaseModel):
    received: int = 0
    uploaded_ok: int = 0
    failed: int = 0


class UploadResult(BaseModel):
    """
    Result of staging an upload set.

    ``ok`` only says the batch record exists; callers must check
    ``files`` (or ``counts.failed``) before treating the batch as parseable.
    """

    ok: bool = True
    batch_id: UUID
    upload_set_id: UUID
    source_system: str
    fiscal_ref_date: date
    fiscal_month_anchor: date
    bucket: str
    storage_prefix: str
    counts: UploadCounts
    files: list[StagedFile] = Field(default_factory=list)
