"""
Batch model: one ingestion attempt for one upload set.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from fieldops_ingest.core.errors import InvalidStatusTransitionError


class BatchStatus(str, Enum):
    """
    Lifecycle of a batch.

    uploaded -> committing -> committed | committed_with_errors, and undo
    returns either commit outcome to uploaded. There is no "undoing" state.
    """

    UPLOADED = "uploaded"
    COMMITTING = "committing"
    COMMITTED = "committed"
    COMMITTED_WITH_ERRORS = "committed_with_errors"

    @classmethod
    def ensure_transition(cls, current: "BatchStatus | str", target: "BatchStatus | str") -> None:
        """
        Raise InvalidStatusTransitionError unless current -> target is allowed.

        Args:
            current: Status the batch has now
            target: Status the caller wants to write
        """
        current = cls(current)
        target = cls(target)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransitionError(current.value, target.value)


ALLOWED_TRANSITIONS: dict[BatchStatus, frozenset[BatchStatus]] = {
    # undo of a never-committed batch is a no-op reset
    BatchStatus.UPLOADED: frozenset({BatchStatus.COMMITTING, BatchStatus.UPLOADED}),
    # committing -> uploaded covers cancellation and operator recovery via undo
    BatchStatus.COMMITTING: frozenset({
        BatchStatus.COMMITTED,
        BatchStatus.COMMITTED_WITH_ERRORS,
        BatchStatus.UPLOADED,
        BatchStatus.COMMITTING,
    }),
    BatchStatus.COMMITTED: frozenset({BatchStatus.COMMITTING, BatchStatus.UPLOADED}),
    BatchStatus.COMMITTED_WITH_ERRORS: frozenset({BatchStatus.COMMITTING, BatchStatus.UPLOADED}),
}


class Batch(BaseModel):
    """
    One ingestion attempt for one upload set.

    Attributes:
        batch_id: Internal primary key, assigned by the row store on first write
        upload_set_id: Externally visible identifier, stable across re-commits (unique)
        source_system: Vendor/source key, also the first storage path segment
        fiscal_ref_date: Reference date the fiscal anchor was computed from
        fiscal_month_anchor: Fiscal-period key (always the 21st of a month)
        status: Current lifecycle status
        storage_bucket: Object-storage bucket holding staged files and artifacts
        storage_prefix: Staging prefix (<source>/<anchor>/<upload_set_id>)
        manifest_path: Path of the commit manifest, cleared by undo
        note: Free-text diagnostic left by the last commit or undo
    """

    batch_id: UUID | None = None
    upload_set_id: UUID
    source_system: str = Field(..., min_length=1, max_length=64)
    fiscal_ref_date: date | None = None
    fiscal_month_anchor: date
    status: BatchStatus = BatchStatus.UPLOADED
    storage_bucket: str | None = None
    storage_prefix: str | None = None
    manifest_path: str | None = None
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "batch_id": "6f1f3a34-7c1e-4a39-9a43-1e7dc1f0b0a2",
                "upload_set_id": "0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11",
                "source_system": "ontrac",
                "fiscal_ref_date": "2025-03-25",
                "fiscal_month_anchor": "2025-04-21",
                "status": "committed",
                "storage_bucket": "ingest-ontrac-raw-v1",
                "storage_prefix": "ontrac/2025-04-21/0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11",
                "manifest_path": "ontrac_commits/2025-04-21/0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11/manifest.json",
                "note": None,
            }
        }
