"""
Schema management for the PostgreSQL record store and discard entry log.
"""

from .connection import DatabaseConnectionPool

RECORD_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS discard_record (
        record_id BIGSERIAL PRIMARY KEY,
        site TEXT NOT NULL,
        year TEXT NOT NULL,
        record_type TEXT NOT NULL,
        content JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

RECORD_SCOPE_INDEX_DDL = """
    CREATE INDEX IF NOT EXISTS idx_discard_record_scope
        ON discard_record (site, year, record_type)
"""

RECORD_FIELD_INDEX_DDL = """
    CREATE INDEX IF NOT EXISTS idx_discard_record_field
        ON discard_record (site, year, record_type, (content->>'field'))
"""

ENTRY_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS discard_entry (
        entry_id BIGSERIAL PRIMARY KEY,
        farm_id TEXT NOT NULL,
        farm_name TEXT NOT NULL DEFAULT '',
        section_id TEXT NOT NULL,
        section_name TEXT NOT NULL DEFAULT '',
        field_id TEXT NOT NULL,
        field_name TEXT NOT NULL DEFAULT '',
        scanned_code TEXT NOT NULL,
        barcd TEXT NOT NULL,
        crop TEXT NOT NULL DEFAULT '',
        owner TEXT NOT NULL DEFAULT '',
        submission_id TEXT NOT NULL DEFAULT '',
        extno TEXT NOT NULL DEFAULT '',
        range_val TEXT NOT NULL DEFAULT '',
        row_val TEXT NOT NULL DEFAULT '',
        plot_id TEXT NOT NULL DEFAULT '',
        subplot_id TEXT NOT NULL DEFAULT '',
        matid TEXT NOT NULL DEFAULT '',
        abbrc TEXT NOT NULL DEFAULT '',
        sd_instruction TEXT NOT NULL DEFAULT '',
        vform_record_type TEXT NOT NULL DEFAULT '',
        vdata_site TEXT NOT NULL DEFAULT '',
        vdata_year TEXT NOT NULL DEFAULT '',
        is_discarded BOOLEAN NOT NULL DEFAULT TRUE,
        user_id TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

ENTRY_BARCODE_INDEX_DDL = """
    CREATE INDEX IF NOT EXISTS idx_discard_entry_barcd
        ON discard_entry (upper(btrim(barcd)))
"""


class SchemaManager:
    """
    Creates the tables the PostgreSQL adapters need.

    All statements are idempotent, so ``ensure_schema`` can run on every
    start.
    """

    STATEMENTS = (
        RECORD_TABLE_DDL,
        RECORD_SCOPE_INDEX_DDL,
        RECORD_FIELD_INDEX_DDL,
        ENTRY_TABLE_DDL,
        ENTRY_BARCODE_INDEX_DDL,
    )

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                for statement in self.STATEMENTS:
                    cur.execute(statement)
            conn.commit()

    def table_exists(self, table_name: str) -> bool:
        """
        Check whether a table exists in the current schema.

        Args:
            table_name: Unqualified table name

        Returns:
            True if the table exists
        """
        result = self.pool.execute_query(
            "SELECT to_regclass(%s) IS NOT NULL AS present",
            (table_name,),
        )
        return bool(result and result[0]["present"])
