"""
Prometheus metrics collection for fieldops-ingest

This module provides metrics instrumentation for monitoring the
upload, preview, commit and undo stages.
"""
import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# STAGE METRICS
# =======================

files_processed_total = Counter(
    name="ingest_files_processed_total",
    documentation="Total number of files handled per pipeline stage",
    labelnames=["source_system", "stage", "status"],  # status: ok, failed
    registry=REGISTRY,
)

stage_duration_seconds = Histogram(
    name="ingest_stage_duration_seconds",
    documentation="Time spent in each pipeline stage in seconds",
    labelnames=["source_system", "stage"],  # stage: upload, preview, commit, undo
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

batch_status_transitions_total = Counter(
    name="ingest_batch_status_transitions_total",
    documentation="Total number of batch status changes",
    labelnames=["source_system", "status"],
    registry=REGISTRY,
)

# =======================
# ROW STORE METRICS
# =======================

rows_committed_total = Counter(
    name="ingest_rows_committed_total",
    documentation="Total number of rows written to the row store",
    labelnames=["source_system"],
    registry=REGISTRY,
)

rows_skipped_total = Counter(
    name="ingest_rows_skipped_total",
    documentation="Rows kept in artifacts but not inserted (no natural key)",
    labelnames=["source_system"],
    registry=REGISTRY,
)

footer_rows_excluded_total = Counter(
    name="ingest_footer_rows_excluded_total",
    documentation="Rows classified as footer/total rows and excluded",
    labelnames=["source_system"],
    registry=REGISTRY,
)

raw_rows_deleted_total = Counter(
    name="ingest_raw_rows_deleted_total",
    documentation="Total number of row-store rows deleted by undo",
    labelnames=["source_system", "scope"],
    registry=REGISTRY,
)

row_store_write_duration_seconds = Histogram(
    name="ingest_row_store_write_duration_seconds",
    documentation="Time spent replacing a batch's rows in seconds",
    labelnames=["source_system"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0],
    registry=REGISTRY,
)

# =======================
# STORAGE METRICS
# =======================

storage_objects_written_total = Counter(
    name="ingest_storage_objects_written_total",
    documentation="Total number of objects written to object storage",
    labelnames=["source_system", "kind"],  # kind: staged, artifact, manifest
    registry=REGISTRY,
)

storage_objects_removed_total = Counter(
    name="ingest_storage_objects_removed_total",
    documentation="Total number of commit artifacts removed by undo",
    labelnames=["source_system"],
    registry=REGISTRY,
)

# =======================
# ERROR METRICS
# =======================

errors_total = Counter(
    name="ingest_errors_total",
    documentation="Total number of errors",
    labelnames=["source_system", "error_type", "stage"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: the HTTP server is only needed when the endpoint is enabled
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


# =======================
# CONTEXT MANAGERS
# =======================

class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(stage_duration_seconds, source_system="ontrac", stage="commit"):
            # do work
            pass
    """

    def __init__(self, histogram: Histogram, **labels):
        """
        Initialize duration tracker

        Args:
            histogram: Prometheus Histogram metric
            **labels: Label values for the metric
        """
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        self.timer = self.histogram.labels(**self.labels).time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if value:
        counter.labels(**labels).inc(value)


def record_stage_error(source_system: str, stage: str, exc: BaseException) -> None:
    """Count an error raised out of a pipeline stage."""
    increment_counter(errors_total, 1, source_system=source_system, error_type=type(exc).__name__, stage=stage)
