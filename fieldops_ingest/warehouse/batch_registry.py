"""
Batch registry: the state container for ingestion batches.

Every status write goes through the state machine guard on
``BatchStatus.ensure_transition`` inside a row-locking transaction.
"""

from contextlib import contextmanager
from datetime import date
from uuid import UUID

import psycopg

from fieldops_ingest.core.errors import BatchLockedError, RowStoreError
from fieldops_ingest.core.models.batch import Batch, BatchStatus
from fieldops_ingest.observability.logger import get_logger

from .connection import DatabaseConnectionPool
from .schema_mgmt import BATCH_TABLE

logger = get_logger(__name__)

_COLUMNS = (
    "batch_id, upload_set_id, source_system, fiscal_ref_date, fiscal_month_anchor, status, "
    "storage_bucket, storage_prefix, manifest_path, note, created_at, updated_at"
)


class BatchRegistry:
    """
    Reads and writes batch records in the row store.

    All psycopg errors are re-raised as RowStoreError.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize batch registry.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    # ------------------------------------------------------------------ reads

    def get_by_upload_set_id(self, upload_set_id: UUID) -> Batch | None:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM {BATCH_TABLE} WHERE upload_set_id = %s "
            "ORDER BY created_at DESC LIMIT 1",
            (upload_set_id,),
        )
        return Batch(**rows[0]) if rows else None

    def get_by_batch_id(self, batch_id: UUID) -> Batch | None:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM {BATCH_TABLE} WHERE batch_id = %s",
            (batch_id,),
        )
        return Batch(**rows[0]) if rows else None

    def list_for_anchor(self, source_system: str, fiscal_month_anchor: date) -> list[Batch]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM {BATCH_TABLE} "
            "WHERE source_system = %s AND fiscal_month_anchor = %s ORDER BY created_at",
            (source_system, fiscal_month_anchor),
        )
        return [Batch(**r) for r in rows]

    # ----------------------------------------------------------------- writes

    def upsert_uploaded(self, batch: Batch) -> Batch:
        """
        Create (or refresh) the batch for an upload set with status ``uploaded``.

        Args:
            batch: Batch to write; ``batch_id`` is ignored and assigned by the store

        Returns:
            The stored batch including its ``batch_id``
        """
        query = f"""
            INSERT INTO {BATCH_TABLE} (
                upload_set_id, source_system, fiscal_ref_date, fiscal_month_anchor,
                status, storage_bucket, storage_prefix
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (upload_set_id) DO UPDATE SET
                source_system = EXCLUDED.source_system,
                fiscal_ref_date = EXCLUDED.fiscal_ref_date,
                fiscal_month_anchor = EXCLUDED.fiscal_month_anchor,
                status = EXCLUDED.status,
                storage_bucket = EXCLUDED.storage_bucket,
                storage_prefix = EXCLUDED.storage_prefix,
                updated_at = now()
            RETURNING {_COLUMNS}
        """
        rows = self._query(
            query,
            (
                batch.upload_set_id,
                batch.source_system,
                batch.fiscal_ref_date,
                batch.fiscal_month_anchor,
                BatchStatus.UPLOADED.value,
                batch.storage_bucket,
                batch.storage_prefix,
            ),
        )
        return Batch(**rows[0])

    def mark_committing(
        self,
        upload_set_id: UUID,
        source_system: str,
        fiscal_month_anchor: date,
        storage_bucket: str,
        storage_prefix: str,
    ) -> tuple[Batch, BatchStatus | None]:
        """
        Resolve or create the batch for an upload set and set it to ``committing``.

        Returns:
            (batch, previous status); previous is None when the batch was created here

        Raises:
            InvalidStatusTransitionError: If the current status cannot move to committing
        """
        try:
            with self.pool.transaction() as cur:
                cur.execute(
                    f"SELECT status FROM {BATCH_TABLE} WHERE upload_set_id = %s FOR UPDATE",
                    (upload_set_id,),
                )
                current = cur.fetchone()
                previous = BatchStatus(current["status"]) if current else None
                if previous is not None:
                    BatchStatus.ensure_transition(previous, BatchStatus.COMMITTING)

                cur.execute(
                    f"""
                    INSERT INTO {BATCH_TABLE} (
                        upload_set_id, source_system, fiscal_month_anchor, status,
                        storage_bucket, storage_prefix
                    )
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (upload_set_id) DO UPDATE SET
                        status = EXCLUDED.status,
                        storage_bucket = EXCLUDED.storage_bucket,
                        storage_prefix = EXCLUDED.storage_prefix,
                        updated_at = now()
                    RETURNING {_COLUMNS}
                    """,
                    (
                        upload_set_id,
                        source_system,
                        fiscal_month_anchor,
                        BatchStatus.COMMITTING.value,
                        storage_bucket,
                        storage_prefix,
                    ),
                )
                return Batch(**cur.fetchone()), previous
        except psycopg.Error as e:
            raise RowStoreError(f"Failed to mark batch committing: {e}") from e

    def finish_commit(self, batch_id: UUID, status: BatchStatus, manifest_path: str,
                      note: str | None) -> Batch:
        return self._set_status(batch_id, status, manifest_path=manifest_path, note=note)

    def restore_status(self, batch_id: UUID, status: BatchStatus, note: str | None = None) -> Batch:
        """Put a batch back to the status it had before an aborted commit."""
        return self._set_status(batch_id, status, note=note)

    def reset_after_undo(self, batch_id: UUID, note: str) -> Batch:
        return self._set_status(batch_id, BatchStatus.UPLOADED, manifest_path=None, note=note)

    # ------------------------------------------------------------------ locks

    @contextmanager
    def lock(self, upload_set_id: UUID):
        """
        Hold a session advisory lock for one upload set.

        The lock lives on a dedicated pooled connection for the whole block and
        is released on exit.

        Raises:
            BatchLockedError: If another session holds the lock
        """
        key = str(upload_set_id)
        with self.pool.get_connection() as conn:
            try:
                conn.autocommit = True
                row = conn.execute(
                    "SELECT pg_try_advisory_lock(hashtextextended(%s, 0)) AS locked", (key,)
                ).fetchone()
            except psycopg.Error as e:
                raise RowStoreError(f"Batch lock failed for {key}: {e}") from e
            if not row["locked"]:
                conn.autocommit = False
                raise BatchLockedError(key)

            logger.debug("Acquired batch lock", extra={"upload_set_id": key})
            try:
                yield
            finally:
                try:
                    conn.execute("SELECT pg_advisory_unlock(hashtextextended(%s, 0))", (key,))
                    conn.autocommit = False
                except psycopg.Error as e:
                    # session end releases the lock; the pool discards a broken connection
                    logger.warning("Batch unlock failed", extra={"upload_set_id": key, "error": str(e)})

    # ---------------------------------------------------------------- helpers

    def _set_status(self, batch_id: UUID, target: BatchStatus, **fields) -> Batch:
        assignments = ["status = %s", "updated_at = now()"]
        params: list = [target.value]
        for column, value in fields.items():
            assignments.append(f"{column} = %s")
            params.append(value)
        params.append(batch_id)

        try:
            with self.pool.transaction() as cur:
                cur.execute(
                    f"SELECT status FROM {BATCH_TABLE} WHERE batch_id = %s FOR UPDATE",
                    (batch_id,),
                )
                current = cur.fetchone()
                if current is None:
                    raise RowStoreError(f"Batch {batch_id} disappeared during status update")
                BatchStatus.ensure_transition(current["status"], target)

                cur.execute(
                    f"UPDATE {BATCH_TABLE} SET {', '.join(assignments)} "
                    f"WHERE batch_id = %s RETURNING {_COLUMNS}",
                    tuple(params),
                )
                batch = Batch(**cur.fetchone())
        except psycopg.Error as e:
            raise RowStoreError(f"Failed to update batch {batch_id}: {e}") from e

        logger.info(
            "Batch status updated",
            extra={"batch_id": str(batch_id), "status": target.value},
        )
        return batch

    def _query(self, query: str, params: tuple) -> list[dict]:
        try:
            return self.pool.execute_query(query, params)
        except psycopg.Error as e:
            raise RowStoreError(f"Batch registry query failed: {e}") from e
