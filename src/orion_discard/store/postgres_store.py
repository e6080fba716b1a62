"""
PostgreSQL record store.

Each record is one row of ``discard_record``: the scope columns plus the
record's attribute map as a JSONB document.
"""

import json
from collections.abc import Mapping
from typing import Any

import psycopg

from orion_discard.core.errors import PersistenceError
from orion_discard.core.models import DiscardRecord, ScopeCriteria
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import (
    increment_counter,
    store_errors_total,
    store_operation_duration_seconds,
    track_duration,
)

from .connection import DatabaseConnectionPool
from .record_store import RecordStore, record_from_document, transition_conflict

logger = get_logger(__name__)

# Discard flag of a stored document, read the way DiscardRecord.from_raw reads it:
# isDiscarded first, then is_discarded, truthy strings and numbers accepted.
DISCARDED_FLAG_SQL = """
    lower(btrim(coalesce(
        nullif(btrim(content->>'isDiscarded'), ''),
        content->>'is_discarded',
        ''
    ))) IN ('1', 'true', 'yes', 'y', 'on')
"""


class PostgresRecordStore(RecordStore):
    """
    Record store backed by PostgreSQL.

    Updates replace the whole JSONB document in a single statement, so a
    failed write leaves the previous document in place.
    """

    name = "postgres"

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize the store.

        Args:
            pool: Open database connection pool
        """
        self.pool = pool

    def query(self, scope: ScopeCriteria, field: str | None = None) -> list[DiscardRecord]:
        query = """
            SELECT record_id, content
            FROM discard_record
            WHERE site = %s AND year = %s AND record_type = %s
        """
        params: list[Any] = [scope.site, scope.year, scope.record_type]
        if field:
            query += " AND content->>'field' = %s"
            params.append(field)
        query += " ORDER BY record_id"

        try:
            with track_duration(store_operation_duration_seconds, store=self.name, operation="query"):
                rows = self.pool.execute_query(query, tuple(params))
        except psycopg.Error as e:
            increment_counter(store_errors_total, store=self.name, operation="query")
            logger.error(f"Record query failed: {e}", extra={"scope": scope.model_dump(), "field": field})
            raise PersistenceError("Could not read records", {"reason": str(e)}) from e

        records = []
        for index, row in enumerate(rows):
            record = record_from_document(row["record_id"], row["content"], index)
            if record is not None:
                records.append(record)
        return records

    def get(self, scope: ScopeCriteria, record_id: str) -> DiscardRecord | None:
        query = """
            SELECT record_id, content
            FROM discard_record
            WHERE site = %s AND year = %s AND record_type = %s AND record_id = %s
        """
        try:
            rows = self.pool.execute_query(query, (scope.site, scope.year, scope.record_type, int(record_id)))
        except ValueError:
            return None
        except psycopg.Error as e:
            increment_counter(store_errors_total, store=self.name, operation="get")
            raise PersistenceError("Could not read record", {"record_id": record_id, "reason": str(e)}) from e

        if not rows:
            return None
        return record_from_document(rows[0]["record_id"], rows[0]["content"])

    def update(
        self, scope: ScopeCriteria, record: DiscardRecord, expected_discarded: bool | None = None
    ) -> DiscardRecord:
        command = """
            UPDATE discard_record
            SET content = %s::jsonb, updated_at = now()
            WHERE site = %s AND year = %s AND record_type = %s AND record_id = %s
        """
        try:
            record_id = int(record.id)
        except ValueError as e:
            raise PersistenceError("Invalid record ID", {"record_id": record.id}) from e

        document = record.to_document()
        params: list[Any] = [json.dumps(document), scope.site, scope.year, scope.record_type, record_id]
        if expected_discarded is not None:
            command += f" AND ({DISCARDED_FLAG_SQL}) = %s"
            params.append(expected_discarded)

        try:
            with track_duration(store_operation_duration_seconds, store=self.name, operation="update"):
                rowcount = self.pool.execute_command(command, tuple(params))
        except psycopg.Error as e:
            increment_counter(store_errors_total, store=self.name, operation="update")
            logger.error(f"Record update failed: {e}", extra={"record_id": record.id})
            raise PersistenceError("Error saving record", {"record_id": record.id, "reason": str(e)}) from e

        if rowcount == 0:
            current = self.get(scope, record.id) if expected_discarded is not None else None
            if current is not None and current.is_discarded != expected_discarded:
                logger.info(
                    "Guarded update lost to a concurrent transition",
                    extra={"record_id": record.id, "is_discarded": current.is_discarded},
                )
                raise transition_conflict(current)
            raise PersistenceError("Invalid record ID", {"record_id": record.id, "scope": scope.model_dump()})

        return record_from_document(record.id, document)

    def add(self, scope: ScopeCriteria, document: Mapping[str, Any]) -> DiscardRecord:
        command = """
            INSERT INTO discard_record (site, year, record_type, content)
            VALUES (%s, %s, %s, %s::jsonb)
            RETURNING record_id
        """
        content = {k: v for k, v in document.items() if k not in ("id", "post_id")}
        try:
            with track_duration(store_operation_duration_seconds, store=self.name, operation="insert"):
                row = self.pool.execute_returning(
                    command,
                    (scope.site, scope.year, scope.record_type, json.dumps(content)),
                )
        except psycopg.Error as e:
            increment_counter(store_errors_total, store=self.name, operation="insert")
            raise PersistenceError("Error saving record", {"reason": str(e)}) from e

        return record_from_document(row["record_id"], content)
