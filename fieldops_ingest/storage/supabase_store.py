"""
Supabase Storage backend.
"""

from collections.abc import Sequence

from supabase import Client, create_client

from fieldops_ingest.core.errors import StorageError
from fieldops_ingest.observability.logger import get_logger

from .base import ObjectStore, StorageEntry

logger = get_logger(__name__)


class SupabaseObjectStore(ObjectStore):
    """
    Object store backed by a Supabase Storage bucket.

    Every client error is re-raised as StorageError carrying the object path.
    """

    def __init__(self, client: Client, bucket: str):
        super().__init__(bucket)
        self.client = client

    @classmethod
    def from_credentials(cls, url: str, service_role_key: str, bucket: str) -> "SupabaseObjectStore":
        if not url or not service_role_key:
            raise StorageError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
        return cls(create_client(url, service_role_key), bucket)

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self._bucket().upload(
                path,
                data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            raise StorageError(f"Upload failed for {self.bucket}/{path}: {e}", path=path) from e
        logger.debug("Uploaded object", extra={"bucket": self.bucket, "path": path, "bytes": len(data)})
        return path

    def download(self, path: str) -> bytes:
        try:
            return self._bucket().download(path)
        except Exception as e:
            raise StorageError(f"Download failed for {self.bucket}/{path}: {e}", path=path) from e

    def list(self, prefix: str, limit: int = 100, offset: int = 0) -> list[StorageEntry]:
        try:
            listed = self._bucket().list(
                prefix,
                {"limit": limit, "offset": offset, "sortBy": {"column": "name", "order": "asc"}},
            )
        except Exception as e:
            raise StorageError(f"List failed for {self.bucket}/{prefix}: {e}", path=prefix) from e

        entries = []
        for item in listed or []:
            name = str(item.get("name") or "")
            if not name:
                continue
            metadata = item.get("metadata") or {}
            entries.append(StorageEntry(name=name, size=metadata.get("size")))
        return entries

    def remove(self, paths: Sequence[str]) -> int:
        if not paths:
            return 0
        try:
            self._bucket().remove(list(paths))
        except Exception as e:
            raise StorageError(f"Remove failed in {self.bucket}: {e}", path=paths[0]) from e
        return len(paths)
