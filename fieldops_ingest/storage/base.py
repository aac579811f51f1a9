"""
Object storage interface.

Stores expose a folder-like view over a flat key namespace: ``list`` returns
the names directly under a prefix, where a name without an extension may be
a sub-folder.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class StorageEntry:
    """One entry returned by a folder-level listing."""

    name: str
    size: int | None = None


class ObjectStore(ABC):
    """Abstract object store bound to a single bucket."""

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Write (or overwrite) an object and return its path. Raises StorageError."""

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Read an object. Raises StorageError."""

    @abstractmethod
    def list(self, prefix: str, limit: int = 100, offset: int = 0) -> list[StorageEntry]:
        """List names directly under ``prefix``, sorted by name. Raises StorageError."""

    @abstractmethod
    def remove(self, paths: Sequence[str]) -> int:
        """Delete objects and return how many were requested. Raises StorageError."""
