"""
Listing helpers built on the folder-level ``ObjectStore.list``.
"""

from collections.abc import Sequence

from .base import ObjectStore


def looks_like_folder(name: str) -> bool:
    """
    Folder heuristic for flat-namespace stores.

    An entry with no extension and no path separator is treated as a
    sub-folder. Re-verify this against the backend in use: an extensionless
    object would be descended into and come back empty.
    """
    return "." not in name and "/" not in name


def list_staged_files(store: ObjectStore, prefix: str, limit: int = 500) -> list[str]:
    """File names directly under ``prefix``; nested entries are ignored."""
    names = []
    for entry in store.list(prefix, limit=limit, offset=0):
        if not entry.name or "/" in entry.name:
            continue
        names.append(entry.name)
    return names


def list_all_files_under_prefix(store: ObjectStore, prefix: str, page_size: int = 1000) -> list[str]:
    """
    Recursively list every object path under ``prefix``.

    Raises:
        StorageError: On any listing failure (nothing is partially returned)
    """
    files: list[str] = []
    pending = [prefix.strip("/")]
    while pending:
        folder = pending.pop()
        offset = 0
        while True:
            page = store.list(folder, limit=page_size, offset=offset)
            for entry in page:
                full = f"{folder}/{entry.name}"
                if looks_like_folder(entry.name):
                    pending.append(full)
                else:
                    files.append(full)
            if len(page) < page_size:
                break
            offset += page_size
    return sorted(files)


def remove_in_chunks(store: ObjectStore, paths: Sequence[str], chunk_size: int = 200) -> int:
    """Delete ``paths`` in bounded batches and return the number removed."""
    removed = 0
    for i in range(0, len(paths), chunk_size):
        removed += store.remove(paths[i:i + chunk_size])
    return removed
