"""
Deterministic object-storage layout for staged files and commit artifacts.

    <source>/<anchor>/<upload_set_id>/<file>                 staged input
    <source>_commits/<anchor>/<upload_set_id>/<file>.jsonl   per-file artifact
    <source>_commits/<anchor>/<upload_set_id>/manifest.json  commit manifest
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

COMMITS_SUFFIX = "_commits"
MANIFEST_NAME = "manifest.json"
ARTIFACT_SUFFIX = ".jsonl"


@dataclass(frozen=True)
class StorageLayout:
    source_system: str
    fiscal_month_anchor: date
    upload_set_id: UUID

    @property
    def staging_prefix(self) -> str:
        return f"{self.source_system}/{self.fiscal_month_anchor.isoformat()}/{self.upload_set_id}"

    @property
    def commit_prefix(self) -> str:
        return f"{self.source_system}{COMMITS_SUFFIX}/{self.fiscal_month_anchor.isoformat()}/{self.upload_set_id}"

    @property
    def manifest_path(self) -> str:
        return f"{self.commit_prefix}/{MANIFEST_NAME}"

    def staged_path(self, file_name: str) -> str:
        return f"{self.staging_prefix}/{file_name}"

    def artifact_path(self, file_name: str) -> str:
        return f"{self.commit_prefix}/{file_name}{ARTIFACT_SUFFIX}"


def commit_prefix_from_manifest(manifest_path: str | None) -> str | None:
    """Parent folder of a stored manifest path, or None when there is none."""
    if not manifest_path or "/" not in manifest_path.strip("/"):
        return None
    return manifest_path.strip("/").rsplit("/", 1)[0]
