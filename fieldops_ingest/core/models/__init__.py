"""
Core data models for the ingestion pipeline.

All models use Pydantic for runtime validation and serialization.
"""

from .batch import ALLOWED_TRANSITIONS, Batch, BatchStatus
from .commit import ArtifactRecord, CommitManifest, CommitResult, FileOutcome, ManifestCounts
from .preview import (
    FilePreview,
    FileValidation,
    PreviewCounts,
    PreviewResult,
    ReadinessMarks,
    ReadinessResult,
    ReadinessSignals,
)
from .raw_row import RawRow
from .staging import IncomingFile, StagedFile, UploadCounts, UploadResult
from .undo import UndoResult, UndoScope

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Batch",
    "BatchStatus",
    "RawRow",
    "IncomingFile",
    "StagedFile",
    "UploadCounts",
    "UploadResult",
    "FilePreview",
    "FileValidation",
    "PreviewCounts",
    "PreviewResult",
    "ReadinessMarks",
    "ReadinessResult",
    "ReadinessSignals",
    "ArtifactRecord",
    "FileOutcome",
    "ManifestCounts",
    "CommitManifest",
    "CommitResult",
    "UndoScope",
    "UndoResult",
]
