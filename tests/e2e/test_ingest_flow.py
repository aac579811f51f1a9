"""
End-to-end test for the ingestion flow.

Tests the complete flow: upload → preview → commit → undo → re-commit,
against Postgres (testcontainers) and the local object store.
"""

import json

import pytest

from fieldops_ingest.batch.pipeline import IngestPipeline
from fieldops_ingest.config import PipelineConfig
from fieldops_ingest.core.models import BatchStatus, CommitManifest, IncomingFile, UndoScope
from fieldops_ingest.warehouse.batch_registry import BatchRegistry
from fieldops_ingest.warehouse.raw_rows import RawRowStore

from tests.fakes import build_csv, build_workbook, data_row, scorecard_rows


@pytest.fixture
def db_pipeline(clean_db, local_store, profiles):
    return IngestPipeline(
        store=local_store,
        registry=BatchRegistry(clean_db),
        raw_rows=RawRowStore(clean_db),
        profiles=profiles,
        settings=PipelineConfig(insert_chunk_size=2, max_workers=2),
    )


def incoming_files():
    keystone = scorecard_rows(rows=[data_row("T1001"), data_row("T1002", "Bo Chan"), data_row(None, "Nobody")])
    return [
        IncomingFile(name="keystone.xlsx", content=build_workbook({"Data": keystone})),
        IncomingFile(name="beltway.csv", content=build_csv(scorecard_rows(title="Beltway Scorecard"))),
    ]


@pytest.mark.e2e
@pytest.mark.integration
def test_upload_commit_undo_end_to_end(db_pipeline, clean_db, local_store):
    """
    Steps:
    1. Upload two files for the fiscal month containing 2025-03-25
    2. Preview reports both as ready
    3. Commit writes rows, artifacts and a manifest
    4. Undo removes rows and artifacts but keeps staged files
    5. Re-commit restores the same rows under the same batch
    """
    staged = db_pipeline.upload(incoming_files(), "ontrac", "2025-03-25")
    assert staged.counts.uploaded_ok == 2
    assert str(staged.fiscal_month_anchor) == "2025-04-21"

    preview = db_pipeline.preview(staged.upload_set_id, staged.fiscal_month_anchor)
    assert preview.counts.parsed_ok == 2
    assert all(f.readiness.commit_ready for f in preview.files)

    committed = db_pipeline.commit(staged.fiscal_month_anchor, upload_set_id=staged.upload_set_id)
    assert committed.status == "committed"
    assert committed.rows == 4
    assert committed.skipped_rows == 1

    batch = db_pipeline.status(upload_set_id=staged.upload_set_id)
    assert batch.batch_id == staged.batch_id
    assert batch.status == BatchStatus.COMMITTED
    assert batch.manifest_path == committed.manifest

    rows = db_pipeline.raw_rows.list_for_batch(batch.batch_id)
    assert {(r.source_file, r.region) for r in rows} == {("beltway.csv", "Beltway"), ("keystone.xlsx", "Keystone")}
    assert list(rows[0].payload)[0] == "TechId"

    manifest = CommitManifest.model_validate_json(local_store.download(committed.manifest))
    assert manifest.counts.total_rows == 4

    artifact = local_store.download(f"{committed.commit_prefix}/keystone.xlsx.jsonl").decode()
    assert len(artifact.splitlines()) == 3
    assert json.loads(artifact.splitlines()[0])["raw"]["TechId"] == "T1001"

    undone = db_pipeline.undo(upload_set_id=staged.upload_set_id)
    assert undone.deleted_raw_rows == 4
    assert undone.removed_storage_objects == 3
    assert db_pipeline.raw_rows.count_for_batch(batch.batch_id) == 0
    assert local_store.list(committed.commit_prefix) == []
    assert len(local_store.list(staged.storage_prefix)) == 2

    after_undo = db_pipeline.status(batch_id=batch.batch_id)
    assert after_undo.status == BatchStatus.UPLOADED
    assert after_undo.manifest_path is None
    assert after_undo.note.startswith("Undo commit at ")

    again = db_pipeline.commit(staged.fiscal_month_anchor, batch_id=batch.batch_id)
    assert again.batch_id == batch.batch_id
    assert again.rows == 4


@pytest.mark.e2e
@pytest.mark.integration
def test_undo_all_scope_by_batch_id(db_pipeline, local_store):
    staged = db_pipeline.upload(incoming_files()[:1], "ontrac", "2025-03-25")
    committed = db_pipeline.commit(staged.fiscal_month_anchor, upload_set_id=staged.upload_set_id)

    undone = db_pipeline.undo(batch_id=committed.batch_id, scope=UndoScope.ALL)
    assert undone.scope == UndoScope.ALL
    assert undone.deleted_raw_rows == 2
    assert db_pipeline.raw_rows.count_for_batch(committed.batch_id) == 0
    assert local_store.list(committed.commit_prefix) == []
