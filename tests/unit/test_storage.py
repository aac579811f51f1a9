"""
Unit tests for the object storage layout, the local backend and listing helpers.
"""

from datetime import date
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from fieldops_ingest.core.errors import StorageError
from fieldops_ingest.storage import (
    LocalObjectStore,
    StorageEntry,
    StorageLayout,
    commit_prefix_from_manifest,
    list_all_files_under_prefix,
    list_staged_files,
    looks_like_folder,
    remove_in_chunks,
)
from fieldops_ingest.storage.supabase_store import SupabaseObjectStore

UPLOAD_SET = UUID("0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11")


@pytest.mark.unit
class TestStorageLayout:
    def test_paths(self):
        layout = StorageLayout("ontrac", date(2025, 4, 21), UPLOAD_SET)
        assert layout.staging_prefix == f"ontrac/2025-04-21/{UPLOAD_SET}"
        assert layout.commit_prefix == f"ontrac_commits/2025-04-21/{UPLOAD_SET}"
        assert layout.manifest_path == f"ontrac_commits/2025-04-21/{UPLOAD_SET}/manifest.json"
        assert layout.staged_path("a.xlsx") == f"ontrac/2025-04-21/{UPLOAD_SET}/a.xlsx"
        assert layout.artifact_path("a.xlsx") == f"ontrac_commits/2025-04-21/{UPLOAD_SET}/a.xlsx.jsonl"

    def test_commit_prefix_from_manifest(self):
        assert commit_prefix_from_manifest("ontrac_commits/2025-04-21/x/manifest.json") == "ontrac_commits/2025-04-21/x"
        assert commit_prefix_from_manifest(None) is None
        assert commit_prefix_from_manifest("manifest.json") is None


@pytest.mark.unit
class TestLocalObjectStore:
    def test_upload_download_roundtrip(self, local_store):
        local_store.upload("a/b/c.txt", b"hello", "text/plain")
        assert local_store.download("a/b/c.txt") == b"hello"

    def test_list_is_one_level_and_sorted(self, local_store):
        local_store.upload("p/z.xlsx", b"1")
        local_store.upload("p/a.xlsx", b"22")
        local_store.upload("p/sub/deep.xlsx", b"3")
        entries = local_store.list("p")
        assert [e.name for e in entries] == ["a.xlsx", "sub", "z.xlsx"]
        assert entries[0].size == 2
        assert entries[1].size is None

    def test_list_paging(self, local_store):
        for i in range(5):
            local_store.upload(f"p/f{i}.csv", b"x")
        assert [e.name for e in local_store.list("p", limit=2, offset=2)] == ["f2.csv", "f3.csv"]

    def test_missing_prefix_lists_empty(self, local_store):
        assert local_store.list("nothing/here") == []

    def test_download_missing_raises(self, local_store):
        with pytest.raises(StorageError) as exc_info:
            local_store.download("missing.xlsx")
        assert exc_info.value.path == "missing.xlsx"

    def test_path_escape_is_rejected(self, local_store):
        with pytest.raises(StorageError):
            local_store.upload("../outside.txt", b"x")

    def test_remove_prunes_empty_folders(self, local_store):
        local_store.upload("c/x/1.jsonl", b"1")
        local_store.upload("c/x/2.jsonl", b"2")
        assert local_store.remove(["c/x/1.jsonl", "c/x/2.jsonl"]) == 2
        assert local_store.list("c") == []


@pytest.mark.unit
class TestListingHelpers:
    def test_looks_like_folder(self):
        assert looks_like_folder("2025-04-21")
        assert not looks_like_folder("manifest.json")
        assert not looks_like_folder("a/b")

    def test_list_staged_files_skips_nested_names(self):
        store = MagicMock()
        store.list.return_value = [
            StorageEntry(name="a.xlsx", size=1),
            StorageEntry(name="nested/b.xlsx"),
            StorageEntry(name=""),
        ]
        assert list_staged_files(store, "prefix", limit=10) == ["a.xlsx"]
        store.list.assert_called_once_with("prefix", limit=10, offset=0)

    def test_list_all_files_walks_folders_and_pages(self, local_store):
        for i in range(3):
            local_store.upload(f"root/f{i}.jsonl", b"x")
        local_store.upload("root/nested/manifest.json", b"{}")
        paths = list_all_files_under_prefix(local_store, "root/", page_size=2)
        assert paths == [
            "root/f0.jsonl",
            "root/f1.jsonl",
            "root/f2.jsonl",
            "root/nested/manifest.json",
        ]

    def test_remove_in_chunks(self):
        store = MagicMock()
        store.remove.side_effect = lambda paths: len(paths)
        assert remove_in_chunks(store, [f"p{i}" for i in range(5)], chunk_size=2) == 5
        assert [len(c.args[0]) for c in store.remove.call_args_list] == [2, 2, 1]


@pytest.mark.unit
class TestSupabaseObjectStore:
    def make_store(self):
        client = MagicMock()
        bucket = client.storage.from_.return_value
        return SupabaseObjectStore(client, "ingest-test"), client, bucket

    def test_upload_sets_content_type_and_upsert(self):
        store, client, bucket = self.make_store()
        assert store.upload("a/b.xlsx", b"data", "application/vnd.ms-excel") == "a/b.xlsx"
        client.storage.from_.assert_called_with("ingest-test")
        bucket.upload.assert_called_once_with(
            "a/b.xlsx",
            b"data",
            file_options={"content-type": "application/vnd.ms-excel", "upsert": "true"},
        )

    def test_list_maps_entries(self):
        store, _, bucket = self.make_store()
        bucket.list.return_value = [
            {"name": "a.xlsx", "metadata": {"size": 10}},
            {"name": "sub", "metadata": None},
        ]
        entries = store.list("prefix", limit=5, offset=0)
        assert [(e.name, e.size) for e in entries] == [("a.xlsx", 10), ("sub", None)]

    def test_client_errors_become_storage_errors(self):
        store, _, bucket = self.make_store()
        bucket.download.side_effect = RuntimeError("boom")
        with pytest.raises(StorageError) as exc_info:
            store.download("a.xlsx")
        assert exc_info.value.path == "a.xlsx"

    def test_remove_returns_count(self):
        store, _, bucket = self.make_store()
        bucket.remove.return_value = [{"name": "a"}, {"name": "b"}]
        assert store.remove(["a", "b"]) == 2
