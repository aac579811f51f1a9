"""
Local directory object store for development and tests.
"""

from collections.abc import Sequence
from pathlib import Path

from fieldops_ingest.core.errors import StorageError

from .base import ObjectStore, StorageEntry


class LocalObjectStore(ObjectStore):
    """
    Object store rooted at ``<root>/<bucket>`` on the local filesystem.

    Listing mirrors the hosted backend: immediate children only, folders
    reported by bare name, a missing prefix lists as empty.
    """

    def __init__(self, root: str | Path, bucket: str):
        super().__init__(bucket)
        self.root = Path(root).resolve() / bucket
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.strip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Path escapes bucket root: {path}", path=path)
        return target

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Upload failed for {self.bucket}/{path}: {e}", path=path) from e
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Download failed for {self.bucket}/{path}: {e}", path=path) from e

    def list(self, prefix: str, limit: int = 100, offset: int = 0) -> list[StorageEntry]:
        folder = self._resolve(prefix)
        if not folder.is_dir():
            return []
        try:
            children = sorted(folder.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(f"List failed for {self.bucket}/{prefix}: {e}", path=prefix) from e

        page = children[offset:offset + limit]
        return [
            StorageEntry(name=p.name, size=p.stat().st_size if p.is_file() else None)
            for p in page
        ]

    def remove(self, paths: Sequence[str]) -> int:
        for path in paths:
            target = self._resolve(path)
            try:
                if target.is_file():
                    target.unlink()
            except OSError as e:
                raise StorageError(f"Remove failed for {self.bucket}/{path}: {e}", path=path) from e
            self._prune_empty_parents(target.parent)
        return len(paths)

    def _prune_empty_parents(self, folder: Path) -> None:
        while folder != self.root and folder.is_dir() and not any(folder.iterdir()):
            folder.rmdir()
            folder = folder.parent
