"""
Unit tests for the pipeline facade and its wiring.
"""

import uuid

import pytest

from fieldops_ingest.batch.pipeline import IngestPipeline, build_object_store
from fieldops_ingest.config import StorageConfig
from fieldops_ingest.core.errors import BatchNotFoundError, NoStagedFilesError, ValidationError
from fieldops_ingest.core.models import BatchStatus, IncomingFile
from fieldops_ingest.core.profiles import SourceProfile
from fieldops_ingest.storage.local_store import LocalObjectStore

from tests.fakes import build_workbook, scorecard_rows


def stage(pipeline, source_system="ontrac"):
    return pipeline.upload(
        [IncomingFile(name="keystone.xlsx", content=build_workbook({"Data": scorecard_rows()}))],
        source_system,
        "2025-03-25",
    )


@pytest.mark.unit
class TestIngestPipeline:
    def test_full_cycle(self, pipeline, registry, raw_rows):
        staged = stage(pipeline)
        preview = pipeline.preview(staged.upload_set_id, staged.fiscal_month_anchor)
        assert preview.counts.parsed_ok == 1

        committed = pipeline.commit(staged.fiscal_month_anchor, upload_set_id=staged.upload_set_id)
        assert committed.batch_id == staged.batch_id
        assert pipeline.status(upload_set_id=staged.upload_set_id).status == BatchStatus.COMMITTED

        undone = pipeline.undo(upload_set_id=staged.upload_set_id)
        assert undone.deleted_raw_rows == 2
        assert pipeline.status(batch_id=staged.batch_id).status == BatchStatus.UPLOADED

    def test_commit_by_batch_id_alias(self, pipeline):
        staged = stage(pipeline)
        result = pipeline.commit(staged.fiscal_month_anchor, batch_id=staged.batch_id)
        assert result.upload_set_id == staged.upload_set_id
        assert result.rows == 2

    def test_unknown_batch_id_is_used_as_upload_set_id(self, pipeline, local_store):
        upload_set_id = uuid.uuid4()
        local_store.upload(
            f"ontrac/2025-04-21/{upload_set_id}/k.xlsx",
            build_workbook({"Data": scorecard_rows()}),
        )
        result = pipeline.commit("2025-04-21", batch_id=str(upload_set_id))
        assert result.upload_set_id == upload_set_id

    def test_commit_requires_a_key(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.commit("2025-04-21")

    def test_source_system_comes_from_batch(self, local_store, registry, raw_rows, test_profile):
        acme = SourceProfile(source_system="acme", expected_headers=test_profile.expected_headers)
        pipeline = IngestPipeline(local_store, registry, raw_rows, {"ontrac": test_profile, "acme": acme})
        staged = stage(pipeline, "acme")

        preview = pipeline.preview(staged.upload_set_id, staged.fiscal_month_anchor)
        assert preview.prefix.startswith("acme/")
        result = pipeline.commit(staged.fiscal_month_anchor, upload_set_id=staged.upload_set_id)
        assert result.commit_prefix.startswith("acme_commits/")

    def test_preview_without_batch_defaults_to_ontrac(self, pipeline):
        with pytest.raises(NoStagedFilesError, match="ontrac/2025-04-21/"):
            pipeline.preview(uuid.uuid4(), "2025-04-21")

    def test_status_unknown(self, pipeline):
        with pytest.raises(BatchNotFoundError):
            pipeline.status(upload_set_id=uuid.uuid4())

    def test_init_db_needs_pool(self, pipeline):
        with pytest.raises(RuntimeError):
            pipeline.init_db()

    def test_context_manager_without_pool(self, pipeline):
        with pipeline as p:
            assert p is pipeline


@pytest.mark.unit
class TestBuildObjectStore:
    def test_local_backend(self, tmp_path):
        store = build_object_store(StorageConfig(backend="local", bucket="b", local_root=tmp_path))
        assert isinstance(store, LocalObjectStore)
        assert store.bucket == "b"
