"""
Structured logging for fieldops-ingest

Records are emitted as one JSON object per line (python-json-logger) so that
upload, preview, commit and undo runs can be followed by ``upload_set_id``.
``LOG_LEVEL`` and ``LOG_FORMAT`` (json | text) select level and format.
"""
import logging
import os
import sys
import time
from datetime import datetime, timezone
from uuid import UUID

from pythonjsonlogger import jsonlogger

PACKAGE_LOGGER = "fieldops_ingest"
SERVICE_NAME = "fieldops-ingest"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# extra fields that identify the batch a record belongs to
BATCH_FIELDS = ("upload_set_id", "batch_id", "source_system", "fiscal_month_anchor")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with pipeline context

    Every record carries a UTC timestamp, level, logger, module, function and
    the service name. Batch identifiers passed as ``extra`` are rendered as
    strings whatever type the caller used.
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            log_record["timestamp"] = created.isoformat(timespec="milliseconds").replace("+00:00", "Z")

        level = log_record.get("level")
        log_record["level"] = level.upper() if level else record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["service"] = SERVICE_NAME

        for field in BATCH_FIELDS:
            value = log_record.get(field)
            if isinstance(value, UUID) or hasattr(value, "isoformat"):
                log_record[field] = str(value)


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    Configure a logger with a single stdout handler

    Args:
        name: Logger name
        level: Log level name, defaults to $LOG_LEVEL or INFO
        format_type: "json" or "text", defaults to $LOG_FORMAT or json

    Returns:
        Configured logger instance
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = LOG_LEVELS.get(level_name, logging.INFO)
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format_type == "json":
        handler.setFormatter(CustomJsonFormatter(fmt="%(timestamp)s %(level)s %(logger)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Get a logger instance

    Module loggers (``fieldops_ingest.*``) are children of the package logger
    and inherit its handler; only the package logger is configured here.
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        package = logging.getLogger(PACKAGE_LOGGER)
        if not package.handlers:
            setup_logger(PACKAGE_LOGGER)
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger


class log_operation:
    """
    Log the start, end and duration of a pipeline operation

    Usage:
        with log_operation("Committing upload set", logger=logger, upload_set_id=upload_set_id):
            ...

    A failure is logged at ERROR with the exception type and message and is
    re-raised.
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time = None

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time if self.start_time is not None else 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        fields = {
            "operation": self.operation_name,
            "duration_seconds": round(self.elapsed, 3),
            **self.extra_fields,
        }
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**fields, "status": "success"})
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={
                    **fields,
                    "status": "error",
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                },
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
