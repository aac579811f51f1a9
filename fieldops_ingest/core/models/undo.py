"""
Models for the undo stage.
"""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class UndoScope(str, Enum):
    """
    How much of a commit to reverse.

    RAW removes only row-store rows; COMMIT and ALL also remove the commit
    artifacts (manifest and .jsonl files) from object storage.
    """

    RAW = "raw"
    COMMIT = "commit"
    ALL = "all"

    @property
    def removes_artifacts(self) -> bool:
        return self in (UndoScope.COMMIT, UndoScope.ALL)


class UndoResult(BaseModel):
    ok: bool = True
    scope: UndoScope
    batch_id: UUID
    upload_set_id: UUID
    fiscal_month_anchor: date | None = None
    commit_prefix: str | None = None
    deleted_raw_rows: int = Field(0, ge=0)
    removed_storage_objects: int = Field(0, ge=0)
    note: str
