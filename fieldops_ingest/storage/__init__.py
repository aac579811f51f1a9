"""
Object storage backends and layout.
"""

from .base import ObjectStore, StorageEntry
from .layout import StorageLayout, commit_prefix_from_manifest
from .listing import list_all_files_under_prefix, list_staged_files, looks_like_folder, remove_in_chunks
from .local_store import LocalObjectStore

__all__ = [
    "ObjectStore",
    "StorageEntry",
    "StorageLayout",
    "commit_prefix_from_manifest",
    "list_all_files_under_prefix",
    "list_staged_files",
    "looks_like_folder",
    "remove_in_chunks",
    "LocalObjectStore",
]
