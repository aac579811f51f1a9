"""
Commit stage: re-parse staged files, write per-file artifacts and a manifest
to object storage, and replace the batch's rows in the row store.
"""

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from fieldops_ingest.core.errors import (
    IngestError,
    NoStagedFilesError,
    OperationCancelledError,
    StorageError,
    StoreConsistencyError,
    ValidationError,
)
from fieldops_ingest.core.matching.fiscal_anchor import parse_reference_date
from fieldops_ingest.core.models.batch import Batch, BatchStatus
from fieldops_ingest.core.models.commit import (
    ArtifactRecord,
    CommitManifest,
    CommitResult,
    FileOutcome,
    ManifestCounts,
)
from fieldops_ingest.core.models.raw_row import RawRow
from fieldops_ingest.core.profiles.profile_config import SourceProfile
from fieldops_ingest.observability import metrics
from fieldops_ingest.observability.logger import get_logger, log_operation
from fieldops_ingest.storage.base import ObjectStore
from fieldops_ingest.storage.layout import StorageLayout
from fieldops_ingest.storage.listing import list_staged_files, remove_in_chunks
from fieldops_ingest.utils.cancellation import CancellationToken
from fieldops_ingest.utils.validation import validate_chunk_size, validate_upload_set_id
from fieldops_ingest.warehouse.batch_registry import BatchRegistry
from fieldops_ingest.warehouse.raw_rows import RawRowStore

from .extraction import ParsedFile, SheetExtractor
from .readers.sheet import FileParseError

logger = get_logger(__name__)

ARTIFACT_CONTENT_TYPE = "application/x-ndjson"
MANIFEST_CONTENT_TYPE = "application/json"
HEADER_MISMATCH = "Header fingerprint mismatch (no worksheet matched expected headers)"


@dataclass
class _FileWork:
    outcome: FileOutcome
    rows: list[RawRow] = field(default_factory=list)


class CommitWriter:
    """
    Commits a staged upload set.

    Per-file failures (download, header mismatch, artifact upload) are recorded
    on the file's outcome and never stop sibling files. Row-store and manifest
    failures abort the commit and leave the batch in ``committing``.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: BatchRegistry,
        raw_rows: RawRowStore,
        profiles: Mapping[str, SourceProfile],
        insert_chunk_size: int = 500,
        max_workers: int = 4,
        list_limit: int = 500,
    ):
        self.store = store
        self.registry = registry
        self.raw_rows = raw_rows
        self.profiles = profiles
        self.insert_chunk_size = validate_chunk_size(insert_chunk_size, "insert_chunk_size")
        self.max_workers = max(1, max_workers)
        self.list_limit = list_limit

    def commit(
        self,
        upload_set_id: UUID | str,
        fiscal_month_anchor: date | str,
        source_system: str = "ontrac",
        cancel_token: CancellationToken | None = None,
    ) -> CommitResult:
        """
        Commit every file staged for an upload set.

        Args:
            upload_set_id: Upload set to commit
            fiscal_month_anchor: Anchor the files were staged under
            source_system: Source profile to match against
            cancel_token: Optional deadline / cancel signal

        Returns:
            CommitResult with row count, artifact paths and per-file outcomes

        Raises:
            ValidationError: Missing or malformed identifiers, unknown source
            NoStagedFilesError: If nothing is staged (no state is changed)
            BatchLockedError: If another commit or undo holds the upload set
            OperationCancelledError: If cancelled (previous status restored)
            RowStoreError / StorageError: Fatal store failures
        """
        upload_set_id = validate_upload_set_id(upload_set_id)
        if not fiscal_month_anchor:
            raise ValidationError("Missing fiscal_month_anchor")
        anchor = parse_reference_date(fiscal_month_anchor)
        profile = self.profiles.get(source_system)
        if profile is None:
            raise ValidationError(f"Unknown source_system '{source_system}'")

        layout = StorageLayout(source_system, anchor, upload_set_id)
        token = cancel_token or CancellationToken()

        with log_operation("Committing upload set", logger=logger, upload_set_id=str(upload_set_id)), \
                metrics.track_duration(metrics.stage_duration_seconds, source_system=source_system, stage="commit"):
            names = list_staged_files(self.store, layout.staging_prefix, limit=self.list_limit)
            if not names:
                raise NoStagedFilesError(layout.staging_prefix)

            with self.registry.lock(upload_set_id):
                batch, previous = self.registry.mark_committing(
                    upload_set_id,
                    source_system,
                    anchor,
                    self.store.bucket,
                    layout.staging_prefix,
                )
                metrics.increment_counter(metrics.batch_status_transitions_total,
                                          source_system=source_system, status=BatchStatus.COMMITTING.value)
                written: list[str] = []
                try:
                    return self._run(batch, layout, profile, names, token, written)
                except OperationCancelledError:
                    restore_to = previous or BatchStatus.UPLOADED
                    if restore_to == BatchStatus.UPLOADED:
                        self._discard_artifacts(written, upload_set_id)
                    self.registry.restore_status(batch.batch_id, restore_to, note="Commit cancelled")
                    logger.warning(
                        "Commit cancelled, batch status restored",
                        extra={"upload_set_id": str(upload_set_id), "status": restore_to.value},
                    )
                    raise
                except StoreConsistencyError as e:
                    metrics.record_stage_error(source_system, "commit", e)
                    logger.error(
                        "Commit aborted; batch left in committing",
                        extra={"upload_set_id": str(upload_set_id), "batch_id": str(batch.batch_id)},
                        exc_info=True,
                    )
                    raise

    def _run(self, batch: Batch, layout: StorageLayout, profile: SourceProfile,
             names: list[str], token: CancellationToken, written: list[str]) -> CommitResult:
        extractor = SheetExtractor(profile)
        workers = min(self.max_workers, len(names))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="commit") as pool:
            work = list(pool.map(lambda n: self._commit_file(extractor, layout, batch, n, token, written), names))

        outcomes = [w.outcome for w in work]
        rows = [r for w in work for r in w.rows]
        ok_files = sum(1 for o in outcomes if o.ok)
        failed_files = len(outcomes) - ok_files
        skipped = sum(o.skipped_rows for o in outcomes)

        token.raise_if_cancelled("before row-store write")
        with metrics.track_duration(metrics.row_store_write_duration_seconds, source_system=layout.source_system):
            inserted = self.raw_rows.replace_for_batch(batch.batch_id, rows, chunk_size=self.insert_chunk_size)

        manifest = CommitManifest(
            ok=failed_files == 0 and ok_files > 0,
            batch_id=batch.batch_id,
            upload_set_id=layout.upload_set_id,
            source_system=layout.source_system,
            fiscal_month_anchor=layout.fiscal_month_anchor,
            bucket=self.store.bucket,
            source_prefix=layout.staging_prefix,
            commit_prefix=layout.commit_prefix,
            counts=ManifestCounts(
                listed=len(names),
                committed_ok=ok_files,
                failed=failed_files,
                total_rows=inserted,
                skipped_rows=skipped,
            ),
            files=outcomes,
        )
        self.store.upload(
            layout.manifest_path,
            manifest.model_dump_json(indent=2).encode("utf-8"),
            MANIFEST_CONTENT_TYPE,
        )
        metrics.increment_counter(metrics.storage_objects_written_total,
                                  source_system=layout.source_system, kind="manifest")

        final_status = BatchStatus.COMMITTED if manifest.ok else BatchStatus.COMMITTED_WITH_ERRORS
        notes = []
        if failed_files:
            notes.append(f"{failed_files} file(s) failed during commit")
        if skipped:
            notes.append(f"{skipped} row(s) skipped without {profile.natural_key_header}")
        self.registry.finish_commit(
            batch.batch_id,
            final_status,
            manifest_path=layout.manifest_path,
            note=" • ".join(notes) or None,
        )

        metrics.increment_counter(metrics.batch_status_transitions_total,
                                  source_system=layout.source_system, status=final_status.value)
        metrics.increment_counter(metrics.rows_committed_total, inserted, source_system=layout.source_system)
        metrics.increment_counter(metrics.rows_skipped_total, skipped, source_system=layout.source_system)
        metrics.increment_counter(metrics.files_processed_total, ok_files,
                                  source_system=layout.source_system, stage="commit", status="ok")
        metrics.increment_counter(metrics.files_processed_total, failed_files,
                                  source_system=layout.source_system, stage="commit", status="failed")

        logger.info(
            "Commit finished",
            extra={
                "upload_set_id": str(layout.upload_set_id),
                "batch_id": str(batch.batch_id),
                "status": final_status.value,
                "rows": inserted,
                "skipped_rows": skipped,
                "failed_files": failed_files,
            },
        )

        return CommitResult(
            ok=manifest.ok,
            batch_id=batch.batch_id,
            upload_set_id=layout.upload_set_id,
            status=final_status.value,
            rows=inserted,
            skipped_rows=skipped,
            commit_prefix=layout.commit_prefix,
            manifest=layout.manifest_path,
            failed=failed_files,
            files=outcomes,
        )

    def _commit_file(self, extractor: SheetExtractor, layout: StorageLayout, batch: Batch,
                     name: str, token: CancellationToken, written: list[str]) -> _FileWork:
        token.raise_if_cancelled(f"before {name}")
        path = layout.staged_path(name)

        try:
            extractor.file_reader.check_supported(name)
            content = self.store.download(path)
            parsed = extractor.parse(name, content, extract_unmatched=False)
        except (IngestError, FileParseError) as e:
            return self._failed(name, path, str(e))

        selection = parsed.selection
        if not selection.matched:
            return self._failed(
                name,
                path,
                HEADER_MISMATCH,
                sheet_count=selection.sheet_count,
                sheet_names=selection.sheet_names,
                expected_header_fingerprint=selection.expected_fingerprint,
                file_header_fingerprint=selection.file_fingerprint,
                header_match=False,
            )

        artifact_path = layout.artifact_path(name)
        try:
            self.store.upload(artifact_path, self._artifact_bytes(layout, parsed), ARTIFACT_CONTENT_TYPE)
        except StorageError as e:
            return self._failed(name, path, f"Commit upload failed: {e}")
        written.append(artifact_path)
        metrics.increment_counter(metrics.storage_objects_written_total,
                                  source_system=layout.source_system, kind="artifact")
        metrics.increment_counter(metrics.footer_rows_excluded_total, parsed.footer_rows,
                                  source_system=layout.source_system)

        key_header = extractor.profile.natural_key_header
        rows = [
            RawRow(
                batch_id=batch.batch_id,
                region=parsed.region_name,
                row_num=r.row_num,
                source_file=name,
                tech_id=r.natural_key,
                payload=r.payload,
            )
            for r in parsed.keyed_rows
        ]

        warnings = []
        if parsed.region_name is None:
            warnings.append("Region not detected from title row")
        skipped = len(parsed.keyless_rows)
        if skipped:
            warnings.append(f"{skipped} row(s) skipped: no {key_header} value")
            logger.warning(
                "Rows without natural key kept out of the row store",
                extra={"file": name, "skipped_rows": skipped, "row_nums": [r.row_num for r in parsed.keyless_rows]},
            )

        return _FileWork(
            outcome=FileOutcome(
                ok=True,
                file=name,
                storage_path=path,
                committed_path=artifact_path,
                sheet_count=selection.sheet_count,
                sheet_names=selection.sheet_names,
                matched_sheet_name=selection.sheet_name,
                expected_header_fingerprint=selection.expected_fingerprint,
                file_header_fingerprint=selection.file_fingerprint,
                header_match=True,
                region_detected=parsed.region_name,
                data_rows=len(rows),
                skipped_rows=skipped,
                warnings=warnings,
            ),
            rows=rows,
        )

    def _discard_artifacts(self, paths: list[str], upload_set_id: UUID) -> None:
        if not paths:
            return
        try:
            removed = remove_in_chunks(self.store, sorted(paths))
        except StorageError:
            logger.error(
                "Could not remove artifacts of cancelled commit",
                extra={"upload_set_id": str(upload_set_id), "paths": sorted(paths)},
                exc_info=True,
            )
            return
        logger.info(
            "Removed artifacts of cancelled commit",
            extra={"upload_set_id": str(upload_set_id), "removed": removed},
        )

    @staticmethod
    def _artifact_bytes(layout: StorageLayout, parsed: ParsedFile) -> bytes:
        lines = [
            ArtifactRecord(
                source_system=layout.source_system,
                fiscal_month_anchor=layout.fiscal_month_anchor,
                region=parsed.region_name,
                row_num=r.row_num,
                raw=r.payload,
            ).model_dump_json()
            for r in parsed.rows
        ]
        return "\n".join(lines).encode("utf-8")

    @staticmethod
    def _failed(name: str, path: str, error: str, **fields) -> _FileWork:
        logger.warning("File failed during commit", extra={"file": name, "error": error})
        return _FileWork(outcome=FileOutcome(ok=False, file=name, storage_path=path, error=error, **fields))
