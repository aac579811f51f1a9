"""
Ingestion pipeline orchestration.

Wires the stages to one object store, one row store and the source profiles.
Each stage is invoked on its own against an upload-set identifier:

    upload -> (preview) -> commit -> (undo)
"""

from collections.abc import Mapping, Sequence
from datetime import date
from uuid import UUID

from fieldops_ingest.config import IngestConfig, PipelineConfig, StorageConfig
from fieldops_ingest.core.errors import ValidationError
from fieldops_ingest.core.models.batch import Batch
from fieldops_ingest.core.models.commit import CommitResult
from fieldops_ingest.core.models.preview import PreviewResult
from fieldops_ingest.core.models.staging import IncomingFile, UploadResult
from fieldops_ingest.core.models.undo import UndoResult, UndoScope
from fieldops_ingest.core.profiles.profile_config import SourceProfile, load_source_profiles
from fieldops_ingest.observability.logger import get_logger
from fieldops_ingest.storage.base import ObjectStore
from fieldops_ingest.storage.local_store import LocalObjectStore
from fieldops_ingest.utils.cancellation import CancellationToken
from fieldops_ingest.utils.validation import validate_upload_set_id
from fieldops_ingest.warehouse.batch_registry import BatchRegistry
from fieldops_ingest.warehouse.connection import DatabaseConnectionPool
from fieldops_ingest.warehouse.raw_rows import RawRowStore
from fieldops_ingest.warehouse.schema_mgmt import SchemaManager

from .commit import CommitWriter
from .preview import ParsePreviewer
from .stager import UploadStager
from .undo import UndoExecutor

logger = get_logger(__name__)

DEFAULT_SOURCE_SYSTEM = "ontrac"


def build_object_store(config: StorageConfig) -> ObjectStore:
    if config.backend == "local":
        return LocalObjectStore(config.local_root, config.bucket)
    # supabase client is only imported when that backend is selected
    from fieldops_ingest.storage.supabase_store import SupabaseObjectStore

    return SupabaseObjectStore.from_credentials(
        config.supabase_url,
        config.supabase_service_role_key.get_secret_value(),
        config.bucket,
    )


class IngestPipeline:
    """
    Facade over the upload, preview, commit and undo stages.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: BatchRegistry,
        raw_rows: RawRowStore,
        profiles: Mapping[str, SourceProfile],
        settings: PipelineConfig | None = None,
        pool: DatabaseConnectionPool | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            store: Object store holding staged files and commit artifacts
            registry: Batch registry
            raw_rows: Raw row store
            profiles: Source profiles keyed by source_system
            settings: Chunk sizes, worker count and listing limits
            pool: Connection pool owned by this pipeline (closed by ``close``)
        """
        settings = settings or PipelineConfig()
        self.store = store
        self.registry = registry
        self.raw_rows = raw_rows
        self.profiles = dict(profiles)
        self.settings = settings
        self.pool = pool

        self.stager = UploadStager(store, registry, self.profiles)
        self.previewer = ParsePreviewer(store, self.profiles, list_limit=settings.storage_list_limit)
        self.writer = CommitWriter(
            store,
            registry,
            raw_rows,
            self.profiles,
            insert_chunk_size=settings.insert_chunk_size,
            max_workers=settings.max_workers,
            list_limit=settings.storage_list_limit,
        )
        self.undoer = UndoExecutor(
            store,
            registry,
            raw_rows,
            list_page_size=settings.undo_list_page_size,
            remove_chunk_size=settings.remove_chunk_size,
        )

    @classmethod
    def from_config(cls, config: IngestConfig) -> "IngestPipeline":
        """Build the pipeline and open its connection pool."""
        pool = DatabaseConnectionPool.from_config(config.database)
        pool.open()
        profiles = load_source_profiles(config.pipeline.source_profiles_path)
        return cls(
            store=build_object_store(config.storage),
            registry=BatchRegistry(pool),
            raw_rows=RawRowStore(pool),
            profiles=profiles,
            settings=config.pipeline,
            pool=pool,
        )

    def close(self) -> None:
        if self.pool is not None:
            self.pool.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ------------------------------------------------------------ operations

    def init_db(self) -> None:
        if self.pool is None:
            raise RuntimeError("init_db needs a connection pool")
        SchemaManager(self.pool).ensure_schema()

    def upload(self, files: Sequence[IncomingFile], source_system: str = DEFAULT_SOURCE_SYSTEM,
               fiscal_ref_date: date | str | None = None) -> UploadResult:
        return self.stager.stage(files, source_system, fiscal_ref_date)

    def preview(self, upload_set_id: UUID | str, fiscal_month_anchor: date | str,
                source_system: str | None = None) -> PreviewResult:
        upload_set_id = validate_upload_set_id(upload_set_id)
        source = source_system or self._source_for(upload_set_id)
        return self.previewer.preview(upload_set_id, fiscal_month_anchor, source)

    def commit(
        self,
        fiscal_month_anchor: date | str,
        upload_set_id: UUID | str | None = None,
        batch_id: UUID | str | None = None,
        source_system: str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> CommitResult:
        """
        Commit an upload set.

        ``batch_id`` is accepted as a legacy alias: when it names a known batch
        that batch's upload set is committed, otherwise the value itself is
        used as the upload-set identifier.
        """
        key = self._resolve_commit_key(upload_set_id, batch_id)
        source = source_system or self._source_for(key)
        token = cancel_token or CancellationToken(timeout=timeout)
        return self.writer.commit(key, fiscal_month_anchor, source, cancel_token=token)

    def undo(
        self,
        upload_set_id: UUID | str | None = None,
        batch_id: UUID | str | None = None,
        fiscal_month_anchor: date | str | None = None,
        scope: UndoScope | str | None = UndoScope.COMMIT,
    ) -> UndoResult:
        return self.undoer.undo(upload_set_id, batch_id, fiscal_month_anchor, scope)

    def status(self, upload_set_id: UUID | str | None = None,
               batch_id: UUID | str | None = None) -> Batch:
        return self.undoer.resolve_batch(upload_set_id, batch_id)

    # --------------------------------------------------------------- helpers

    def _resolve_commit_key(self, upload_set_id, batch_id) -> UUID:
        if upload_set_id:
            return validate_upload_set_id(upload_set_id)
        if not batch_id:
            raise ValidationError("Missing upload_set_id (or batch_id alias)")
        alias = validate_upload_set_id(batch_id, "batch_id")
        batch = self.registry.get_by_batch_id(alias)
        return batch.upload_set_id if batch else alias

    def _source_for(self, upload_set_id: UUID) -> str:
        batch = self.registry.get_by_upload_set_id(upload_set_id)
        if batch is None:
            logger.info(
                "No batch recorded for upload set, using default source",
                extra={"upload_set_id": str(upload_set_id), "source_system": DEFAULT_SOURCE_SYSTEM},
            )
            return DEFAULT_SOURCE_SYSTEM
        return batch.source_system


__all__ = ["IngestPipeline", "build_object_store"]
