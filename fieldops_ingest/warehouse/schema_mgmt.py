"""
Schema management for the ingestion row store.

Creates the batch and raw-row tables plus the reporting view. Every statement
is idempotent so ``ensure_schema`` can run on each deploy.
"""

from .connection import DatabaseConnectionPool

BATCH_TABLE = "ingest_batches_v1"
RAW_TABLE = "ingest_raw_rows_v1"
ANCHOR_VIEW = "ingest_raw_rows_with_anchor_v1"

SCHEMA_DDL: tuple[str, ...] = (
    f"""
    CREATE TABLE IF NOT EXISTS {BATCH_TABLE} (
        batch_id            UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        upload_set_id       UUID NOT NULL UNIQUE,
        source_system       VARCHAR(64) NOT NULL,
        fiscal_ref_date     DATE,
        fiscal_month_anchor DATE NOT NULL,
        status              VARCHAR(32) NOT NULL DEFAULT 'uploaded'
            CHECK (status IN ('uploaded', 'committing', 'committed', 'committed_with_errors')),
        storage_bucket      TEXT,
        storage_prefix      TEXT,
        manifest_path       TEXT,
        note                TEXT,
        created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at          TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_{BATCH_TABLE}_anchor
        ON {BATCH_TABLE} (source_system, fiscal_month_anchor)
    """,
    # payload is json (not jsonb) so the source column order survives
    f"""
    CREATE TABLE IF NOT EXISTS {RAW_TABLE} (
        raw_row_id  BIGSERIAL PRIMARY KEY,
        batch_id    UUID NOT NULL REFERENCES {BATCH_TABLE} (batch_id) ON DELETE CASCADE,
        region      TEXT,
        row_num     INTEGER NOT NULL CHECK (row_num >= 1),
        source_file TEXT NOT NULL,
        tech_id     TEXT NOT NULL,
        payload     JSON NOT NULL,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    f"""
    CREATE INDEX IF NOT EXISTS idx_{RAW_TABLE}_batch
        ON {RAW_TABLE} (batch_id)
    """,
    f"""
    CREATE OR REPLACE VIEW {ANCHOR_VIEW} AS
    SELECT r.raw_row_id,
           r.batch_id,
           b.upload_set_id,
           b.source_system,
           b.fiscal_month_anchor,
           r.region,
           r.row_num,
           r.source_file,
           r.tech_id,
           r.payload,
           r.created_at
      FROM {RAW_TABLE} r
      JOIN {BATCH_TABLE} b ON b.batch_id = r.batch_id
    """,
)


class SchemaManager:
    """
    Manages the row-store schema.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize schema manager.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create tables, indexes and the reporting view if missing."""
        with self.pool.transaction() as cur:
            for statement in SCHEMA_DDL:
                cur.execute(statement)

    def table_exists(self, table_name: str) -> bool:
        rows = self.pool.execute_query(
            "SELECT to_regclass(%s) IS NOT NULL AS present",
            (table_name,),
        )
        return bool(rows and rows[0]["present"])
