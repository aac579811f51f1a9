"""
Raw row store: committed data rows per batch.

Rows for a batch are replaced wholesale in a single transaction, so a reader
never sees a half-written batch and a failed insert keeps the previous rows.
"""

import json
from collections.abc import Sequence
from contextlib import contextmanager
from uuid import UUID

import psycopg

from fieldops_ingest.core.errors import RowStoreError
from fieldops_ingest.core.models.raw_row import RawRow
from fieldops_ingest.observability.logger import get_logger

from .connection import DatabaseConnectionPool
from .schema_mgmt import RAW_TABLE

logger = get_logger(__name__)

INSERT_SQL = f"""
    INSERT INTO {RAW_TABLE} (batch_id, region, row_num, source_file, tech_id, payload)
    VALUES (%s, %s, %s, %s, %s, %s)
"""


class RawRowStore:
    """
    Writes and deletes RawRow records.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize raw row store.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def count_for_batch(self, batch_id: UUID) -> int:
        try:
            rows = self.pool.execute_query(
                f"SELECT COUNT(*) AS n FROM {RAW_TABLE} WHERE batch_id = %s", (batch_id,)
            )
        except psycopg.Error as e:
            raise RowStoreError(f"Row count failed for batch {batch_id}: {e}") from e
        return int(rows[0]["n"])

    def list_for_batch(self, batch_id: UUID) -> list[RawRow]:
        try:
            rows = self.pool.execute_query(
                f"""
                SELECT batch_id, region, row_num, source_file, tech_id, payload
                FROM {RAW_TABLE} WHERE batch_id = %s ORDER BY source_file, row_num
                """,
                (batch_id,),
            )
        except psycopg.Error as e:
            raise RowStoreError(f"Row listing failed for batch {batch_id}: {e}") from e
        return [RawRow(**r) for r in rows]

    def delete_for_batch(self, batch_id: UUID) -> int:
        """Delete every row of a batch and return how many were removed."""
        try:
            deleted = self.pool.execute_command(
                f"DELETE FROM {RAW_TABLE} WHERE batch_id = %s", (batch_id,)
            )
        except psycopg.Error as e:
            raise RowStoreError(f"DB delete failed for batch {batch_id}: {e}") from e
        logger.info("Deleted raw rows", extra={"batch_id": str(batch_id), "deleted": deleted})
        return deleted

    @contextmanager
    def deleting_for_batch(self, batch_id: UUID):
        """
        Delete a batch's rows in a transaction that commits only if the block succeeds.

        Yields:
            Number of rows the DELETE removed

        Raises:
            RowStoreError: If the delete or the commit fails
        """
        try:
            with self.pool.transaction() as cur:
                cur.execute(f"DELETE FROM {RAW_TABLE} WHERE batch_id = %s", (batch_id,))
                yield cur.rowcount
        except psycopg.Error as e:
            raise RowStoreError(f"DB delete failed for batch {batch_id}: {e}") from e

    def replace_for_batch(self, batch_id: UUID, rows: Sequence[RawRow], chunk_size: int = 500) -> int:
        """
        Replace all rows of a batch.

        Args:
            batch_id: Batch whose rows are replaced
            rows: New rows (all must belong to ``batch_id``)
            chunk_size: Rows per executemany call

        Returns:
            Number of rows inserted

        Raises:
            RowStoreError: If the delete or any insert fails (nothing is changed)
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if any(r.batch_id != batch_id for r in rows):
            raise ValueError("All rows must belong to the batch being replaced")

        try:
            with self.pool.transaction() as cur:
                cur.execute(f"DELETE FROM {RAW_TABLE} WHERE batch_id = %s", (batch_id,))
                cleared = cur.rowcount
                for start in range(0, len(rows), chunk_size):
                    chunk = rows[start:start + chunk_size]
                    cur.executemany(
                        INSERT_SQL,
                        [
                            (
                                r.batch_id,
                                r.region,
                                r.row_num,
                                r.source_file,
                                r.tech_id,
                                json.dumps(r.payload),
                            )
                            for r in chunk
                        ],
                    )
        except psycopg.Error as e:
            raise RowStoreError(f"DB insert failed for batch {batch_id}: {e}") from e

        logger.info(
            "Replaced raw rows",
            extra={"batch_id": str(batch_id), "cleared": cleared, "inserted": len(rows)},
        )
        return len(rows)
