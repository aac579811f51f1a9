"""
Input validation utilities for the ingestion pipeline.

Reusable checks for identifiers, file names and request parameters. All of
them raise ``ValidationError`` before any side effect happens.
"""

import re
from pathlib import PurePosixPath, PureWindowsPath
from uuid import UUID

from fieldops_ingest.core.errors import ValidationError
from fieldops_ingest.core.models.undo import UndoScope

_SOURCE_SYSTEM = re.compile(r"^[a-z0-9_\-]+$")
_UNSAFE_NAME_CHARS = re.compile(r"[\x00-\x1f]")


def validate_upload_set_id(value: str | UUID | None, field_name: str = "upload_set_id") -> UUID:
    """
    Validate an upload-set (or batch) identifier.

    Args:
        value: UUID or its string form
        field_name: Name of the field (for error messages)

    Returns:
        The identifier as a UUID

    Raises:
        ValidationError: If the value is missing or not a UUID

    Examples:
        >>> validate_upload_set_id("0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11")
        UUID('0b7f7f4e-2d7b-4bde-8d2a-4f3f0b3c2a11')
    """
    if isinstance(value, UUID):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing {field_name}")
    try:
        return UUID(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"{field_name} must be a UUID, got {value!r}") from e


def validate_source_system(source_system: str | None, field_name: str = "source_system") -> str:
    """
    Validate a source system key.

    Source systems are lowercase alphanumerics, hyphens and underscores; the
    value becomes the first storage path segment.
    """
    if not source_system or not str(source_system).strip():
        raise ValidationError(f"Missing {field_name}")
    source_system = str(source_system).strip()
    if len(source_system) > 64:
        raise ValidationError(f"{field_name} exceeds maximum length of 64 characters")
    if not _SOURCE_SYSTEM.match(source_system):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "Only lowercase alphanumerics, hyphens and underscores are allowed."
        )
    return source_system


def sanitize_file_name(name: str | None) -> str:
    """
    Reduce an uploaded file name to a safe base name.

    Directory parts (either separator style) and control characters are
    dropped; an empty result becomes ``file``.

    Examples:
        >>> sanitize_file_name("C:\\\\exports\\\\keystone.xlsx")
        'keystone.xlsx'
        >>> sanitize_file_name("")
        'file'
    """
    raw = str(name or "")
    base = PurePosixPath(PureWindowsPath(raw).name).name
    base = _UNSAFE_NAME_CHARS.sub("", base).strip()
    if base in ("", ".", ".."):
        return "file"
    return base


def validate_scope(scope: str | UndoScope | None) -> UndoScope:
    """Parse an undo scope, defaulting to ``commit``."""
    if scope is None or (isinstance(scope, str) and not scope.strip()):
        return UndoScope.COMMIT
    try:
        return UndoScope(str(scope.value if isinstance(scope, UndoScope) else scope).strip().lower())
    except ValueError as e:
        allowed = ", ".join(s.value for s in UndoScope)
        raise ValidationError(f"Invalid scope {scope!r} (expected one of: {allowed})") from e


def validate_chunk_size(value: int, field_name: str = "chunk_size", maximum: int = 10000) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    if value < 1 or value > maximum:
        raise ValidationError(f"{field_name} must be between 1 and {maximum}")
    return value
