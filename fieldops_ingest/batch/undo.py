"""
Undo stage: reverse a commit in both the row store and object storage.

Unlike commit, undo does not tolerate partial failure. Storage is listed
before anything is deleted, and the row delete only commits after every
artifact was removed.
"""

from datetime import date, datetime, timezone
from uuid import UUID

from fieldops_ingest.core.errors import BatchNotFoundError, StoreConsistencyError, ValidationError
from fieldops_ingest.core.matching.fiscal_anchor import parse_reference_date
from fieldops_ingest.core.models.batch import Batch
from fieldops_ingest.core.models.undo import UndoResult, UndoScope
from fieldops_ingest.observability import metrics
from fieldops_ingest.observability.logger import get_logger, log_operation
from fieldops_ingest.storage.base import ObjectStore
from fieldops_ingest.storage.layout import MANIFEST_NAME, StorageLayout, commit_prefix_from_manifest
from fieldops_ingest.storage.listing import list_all_files_under_prefix, remove_in_chunks
from fieldops_ingest.utils.validation import validate_scope, validate_upload_set_id
from fieldops_ingest.warehouse.batch_registry import BatchRegistry
from fieldops_ingest.warehouse.raw_rows import RawRowStore

logger = get_logger(__name__)


def undo_note(scope: UndoScope, removed_storage: int, deleted_raw_rows: int,
              at: datetime | None = None) -> str:
    at = at or datetime.now(timezone.utc)
    iso = at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return (
        f"Undo {scope.value} at {iso} • removed_storage={removed_storage} "
        f"• deleted_raw_rows={deleted_raw_rows}"
    )


class UndoExecutor:
    """
    Deletes a batch's committed rows and artifacts and resets it to ``uploaded``.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: BatchRegistry,
        raw_rows: RawRowStore,
        list_page_size: int = 1000,
        remove_chunk_size: int = 200,
    ):
        self.store = store
        self.registry = registry
        self.raw_rows = raw_rows
        self.list_page_size = list_page_size
        self.remove_chunk_size = remove_chunk_size

    def resolve_batch(self, upload_set_id: UUID | str | None = None,
                      batch_id: UUID | str | None = None) -> Batch:
        """
        Find the batch by upload-set id, falling back to the internal batch id.

        Raises:
            ValidationError: If neither identifier is given or one is malformed
            BatchNotFoundError: If no batch matches
        """
        if upload_set_id:
            upload_set_id = validate_upload_set_id(upload_set_id)
            batch = self.registry.get_by_upload_set_id(upload_set_id)
            if batch is None:
                raise BatchNotFoundError(f"Batch not found for upload_set_id={upload_set_id}")
            return batch
        if batch_id:
            batch_id = validate_upload_set_id(batch_id, "batch_id")
            batch = self.registry.get_by_batch_id(batch_id)
            if batch is None:
                raise BatchNotFoundError(f"Batch not found for batch_id={batch_id}")
            return batch
        raise ValidationError("Missing upload_set_id or batch_id")

    def commit_prefix_for(self, batch: Batch, fiscal_month_anchor: date | None = None) -> str | None:
        """Commit prefix from the stored manifest path, else computed from anchor and ids."""
        prefix = commit_prefix_from_manifest(batch.manifest_path)
        if prefix:
            return prefix
        anchor = fiscal_month_anchor or batch.fiscal_month_anchor
        if anchor is None:
            return None
        return StorageLayout(batch.source_system, anchor, batch.upload_set_id).commit_prefix

    def undo(
        self,
        upload_set_id: UUID | str | None = None,
        batch_id: UUID | str | None = None,
        fiscal_month_anchor: date | str | None = None,
        scope: UndoScope | str | None = UndoScope.COMMIT,
    ) -> UndoResult:
        """
        Undo a commit.

        Args:
            upload_set_id: Preferred lookup key
            batch_id: Fallback lookup key (internal id)
            fiscal_month_anchor: Override used to compute the commit prefix
                when the batch has no manifest path
            scope: ``raw`` (rows only), ``commit`` or ``all`` (rows and artifacts)

        Returns:
            UndoResult with the counts removed

        Raises:
            ValidationError / BatchNotFoundError: Bad or unknown identifiers
            BatchLockedError: If a commit or undo holds the upload set
            RowStoreError / StorageError: Nothing is reset when either fails
        """
        scope = validate_scope(scope)
        anchor_override = parse_reference_date(fiscal_month_anchor) if fiscal_month_anchor else None
        batch = self.resolve_batch(upload_set_id, batch_id)

        with log_operation(
            "Undoing commit",
            logger=logger,
            upload_set_id=str(batch.upload_set_id),
            batch_id=str(batch.batch_id),
            scope=scope.value,
        ), metrics.track_duration(metrics.stage_duration_seconds, source_system=batch.source_system, stage="undo"):
            with self.registry.lock(batch.upload_set_id):
                try:
                    return self._undo_locked(batch, scope, anchor_override)
                except StoreConsistencyError as e:
                    metrics.record_stage_error(batch.source_system, "undo", e)
                    raise

    def _undo_locked(self, batch: Batch, scope: UndoScope, anchor_override: date | None) -> UndoResult:
        commit_prefix = self.commit_prefix_for(batch, anchor_override)

        paths: list[str] = []
        if scope.removes_artifacts and commit_prefix:
            paths = list_all_files_under_prefix(self.store, commit_prefix, page_size=self.list_page_size)
            # manifest goes last so an interrupted removal can be listed and retried
            paths.sort(key=lambda p: p.rsplit("/", 1)[-1] == MANIFEST_NAME)

        with self.raw_rows.deleting_for_batch(batch.batch_id) as deleted_rows:
            removed = remove_in_chunks(self.store, paths, self.remove_chunk_size) if paths else 0

        note = undo_note(scope, removed, deleted_rows)
        self.registry.reset_after_undo(batch.batch_id, note)

        metrics.increment_counter(metrics.raw_rows_deleted_total, deleted_rows,
                                  source_system=batch.source_system, scope=scope.value)
        metrics.increment_counter(metrics.storage_objects_removed_total, removed,
                                  source_system=batch.source_system)
        logger.info(
            "Undo finished",
            extra={
                "batch_id": str(batch.batch_id),
                "deleted_raw_rows": deleted_rows,
                "removed_storage_objects": removed,
                "commit_prefix": commit_prefix,
            },
        )

        return UndoResult(
            ok=True,
            scope=scope,
            batch_id=batch.batch_id,
            upload_set_id=batch.upload_set_id,
            fiscal_month_anchor=batch.fiscal_month_anchor,
            commit_prefix=commit_prefix,
            deleted_raw_rows=deleted_rows,
            removed_storage_objects=removed,
            note=note,
        )
