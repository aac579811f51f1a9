"""
Exception hierarchy for the ingestion pipeline.

Errors fall into four groups:

- input errors (``ValidationError`` and subclasses): rejected before any
  side effect happens
- missing targets (``BatchNotFoundError``, ``NoStagedFilesError``)
- store-consistency errors (``RowStoreError``, ``StorageError``): fatal to the
  operation in progress, the batch is left in a transitional or unchanged state
- coordination errors (``BatchLockedError``, ``OperationCancelledError``)

Per-file problems during preview and commit are never raised; they are
recorded on the file's outcome instead.
"""

# Machine-readable error codes (surfaced by the CLI)
ERROR_VALIDATION = "validation_error"
ERROR_NOT_FOUND = "not_found"
ERROR_CONFLICT = "conflict"
ERROR_ROW_STORE = "row_store_error"
ERROR_STORAGE = "storage_error"
ERROR_CANCELLED = "cancelled"
ERROR_INTERNAL = "internal_error"


class IngestError(Exception):
    """Base class for all pipeline errors."""

    code = ERROR_INTERNAL


class ValidationError(IngestError, ValueError):
    """Raised when caller input is missing or malformed."""

    code = ERROR_VALIDATION


class UnsupportedFileTypeError(ValidationError):
    """Raised for a file whose extension no reader handles."""

    def __init__(self, file_name: str, allowed: tuple[str, ...] | list[str] = ()):
        self.file_name = file_name
        self.allowed = tuple(allowed)
        expected = ", ".join(self.allowed) if self.allowed else "none"
        super().__init__(f"Unsupported file type for '{file_name}' (expected one of: {expected})")


class InvalidFiscalDateError(ValidationError):
    """Raised when a fiscal reference date cannot be parsed."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid fiscal reference date: {value!r} (expected YYYY-MM-DD)")


class BatchNotFoundError(IngestError):
    code = ERROR_NOT_FOUND


class NoStagedFilesError(IngestError):
    """Raised when nothing is staged under an upload-set prefix."""

    code = ERROR_NOT_FOUND

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"No files found under {prefix}/")


class InvalidStatusTransitionError(IngestError):
    code = ERROR_CONFLICT

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Batch status cannot move from '{current}' to '{target}'")


class BatchLockedError(IngestError):
    """Raised when another commit or undo holds the batch lock."""

    code = ERROR_CONFLICT

    def __init__(self, upload_set_id: str):
        self.upload_set_id = upload_set_id
        super().__init__(
            f"Upload set {upload_set_id} is locked by another commit or undo; retry later"
        )


class StoreConsistencyError(IngestError):
    """A row-store or object-storage failure that aborts the current operation."""


class RowStoreError(StoreConsistencyError):
    code = ERROR_ROW_STORE


class StorageError(StoreConsistencyError):
    code = ERROR_STORAGE

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class OperationCancelledError(IngestError):
    code = ERROR_CANCELLED
