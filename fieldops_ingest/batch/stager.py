"""
Upload staging: store raw files under a fresh upload set and register the batch.
"""

import uuid
from collections.abc import Mapping, Sequence
from datetime import date
from uuid import UUID

from fieldops_ingest.core.errors import StorageError, ValidationError
from fieldops_ingest.core.matching.fiscal_anchor import fiscal_month_anchor, parse_reference_date
from fieldops_ingest.core.models.batch import Batch
from fieldops_ingest.core.models.staging import (
    IncomingFile,
    StagedFile,
    UploadCounts,
    UploadResult,
)
from fieldops_ingest.core.profiles.profile_config import SourceProfile
from fieldops_ingest.observability import metrics
from fieldops_ingest.observability.logger import get_logger, log_operation
from fieldops_ingest.storage.base import ObjectStore
from fieldops_ingest.storage.layout import StorageLayout
from fieldops_ingest.utils.validation import sanitize_file_name, validate_source_system
from fieldops_ingest.warehouse.batch_registry import BatchRegistry

from .readers.file_reader import FileReader

logger = get_logger(__name__)


class UploadStager:
    """
    Persists uploaded files to object storage and creates the batch record.

    A file that fails to store is reported on its own entry; the call only
    fails when the input is invalid or the batch record cannot be written.
    """

    def __init__(self, store: ObjectStore, registry: BatchRegistry,
                 profiles: Mapping[str, SourceProfile]):
        self.store = store
        self.registry = registry
        self.profiles = profiles

    def stage(
        self,
        files: Sequence[IncomingFile],
        source_system: str,
        fiscal_ref_date: date | str | None = None,
        upload_set_id: UUID | None = None,
    ) -> UploadResult:
        """
        Stage a set of files.

        Args:
            files: Raw files to store
            source_system: Source key; selects the profile and the storage prefix
            fiscal_ref_date: Reference date for the fiscal anchor (today UTC if absent)
            upload_set_id: Identifier to use instead of a freshly generated one

        Returns:
            UploadResult with per-file outcomes

        Raises:
            ValidationError: Missing files, unknown source, bad date or file type
            RowStoreError: If the batch record cannot be written
        """
        source_system = validate_source_system(source_system)
        profile = self.profiles.get(source_system)
        if profile is None:
            raise ValidationError(f"Unknown source_system '{source_system}'")
        if not files:
            raise ValidationError("No files provided")

        reader = FileReader(profile.allowed_extensions)
        names = [sanitize_file_name(f.name) for f in files]
        for name in names:
            reader.check_supported(name)

        ref_date = parse_reference_date(fiscal_ref_date)
        anchor = fiscal_month_anchor(ref_date)
        upload_set_id = upload_set_id or uuid.uuid4()
        layout = StorageLayout(source_system, anchor, upload_set_id)

        with log_operation(
            "Staging upload set",
            logger=logger,
            upload_set_id=str(upload_set_id),
            source_system=source_system,
            file_count=len(files),
        ), metrics.track_duration(metrics.stage_duration_seconds, source_system=source_system, stage="upload"):
            batch = self.registry.upsert_uploaded(
                Batch(
                    upload_set_id=upload_set_id,
                    source_system=source_system,
                    fiscal_ref_date=ref_date,
                    fiscal_month_anchor=anchor,
                    storage_bucket=self.store.bucket,
                    storage_prefix=layout.staging_prefix,
                )
            )

            staged = [self._store_file(layout, name, f) for name, f in zip(names, files)]

        uploaded_ok = sum(1 for s in staged if s.ok)
        metrics.increment_counter(metrics.files_processed_total, uploaded_ok,
                                  source_system=source_system, stage="upload", status="ok")
        metrics.increment_counter(metrics.files_processed_total, len(staged) - uploaded_ok,
                                  source_system=source_system, stage="upload", status="failed")

        return UploadResult(
            ok=True,
            batch_id=batch.batch_id,
            upload_set_id=upload_set_id,
            source_system=source_system,
            fiscal_ref_date=ref_date,
            fiscal_month_anchor=anchor,
            bucket=self.store.bucket,
            storage_prefix=layout.staging_prefix,
            counts=UploadCounts(
                received=len(files),
                uploaded_ok=uploaded_ok,
                failed=len(staged) - uploaded_ok,
            ),
            files=staged,
        )

    def _store_file(self, layout: StorageLayout, name: str, incoming: IncomingFile) -> StagedFile:
        path = layout.staged_path(name)
        content_type = incoming.content_type or "application/octet-stream"
        try:
            self.store.upload(path, incoming.content, content_type)
        except StorageError as e:
            logger.warning(
                "Staged file upload failed",
                extra={"upload_set_id": str(layout.upload_set_id), "file": name, "error": str(e)},
            )
            return StagedFile(
                ok=False,
                original_filename=name,
                content_type=content_type,
                bytes=incoming.size,
                error=str(e),
            )

        metrics.increment_counter(metrics.storage_objects_written_total,
                                  source_system=layout.source_system, kind="staged")
        return StagedFile(
            ok=True,
            original_filename=name,
            content_type=content_type,
            bytes=incoming.size,
            storage_path=path,
        )
