"""
Row store access: connection pool, schema, batch registry and raw rows.
"""

from .batch_registry import BatchRegistry
from .connection import DatabaseConnectionPool
from .raw_rows import RawRowStore
from .schema_mgmt import ANCHOR_VIEW, BATCH_TABLE, RAW_TABLE, SchemaManager

__all__ = [
    "BatchRegistry",
    "DatabaseConnectionPool",
    "RawRowStore",
    "SchemaManager",
    "ANCHOR_VIEW",
    "BATCH_TABLE",
    "RAW_TABLE",
]
