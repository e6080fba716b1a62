"""
Discard entry log: the append-only list of scans submitted at the station.
"""

import threading
from abc import ABC, abstractmethod

import psycopg

from orion_discard.core.barcodes import normalize_barcode
from orion_discard.core.errors import PersistenceError
from orion_discard.core.models import DiscardEntry
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import (
    increment_counter,
    store_errors_total,
    store_operation_duration_seconds,
    track_duration,
)

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)


class DiscardEntryLog(ABC):
    """Where submitted discards are recorded."""

    name = "abstract"

    @abstractmethod
    def insert(self, entry: DiscardEntry) -> DiscardEntry:
        """
        Record a submission.

        Returns:
            The entry with its assigned ``entry_id``

        Raises:
            PersistenceError: If the write fails
        """

    @abstractmethod
    def find_discarded(self, barcode: str) -> DiscardEntry | None:
        """Return the first discarded entry for a barcode (trimmed, case-insensitive)."""

    @abstractmethod
    def list_entries(self, limit: int = 100) -> list[DiscardEntry]:
        """Most recent entries first."""


class InMemoryEntryLog(DiscardEntryLog):
    name = "memory"

    def __init__(self) -> None:
        self._entries: list[DiscardEntry] = []
        self._lock = threading.Lock()

    def insert(self, entry: DiscardEntry) -> DiscardEntry:
        with self._lock:
            stored = entry.model_copy(update={"entry_id": len(self._entries) + 1})
            self._entries.append(stored)
        return stored

    def find_discarded(self, barcode: str) -> DiscardEntry | None:
        wanted = normalize_barcode(barcode)
        with self._lock:
            for entry in self._entries:
                if entry.is_discarded and normalize_barcode(entry.barcode) == wanted:
                    return entry
        return None

    def list_entries(self, limit: int = 100) -> list[DiscardEntry]:
        with self._lock:
            return list(reversed(self._entries))[:limit]


class PostgresEntryLog(DiscardEntryLog):
    """Entry log stored in the ``discard_entry`` table."""

    name = "postgres"

    COLUMNS = (
        "farm_id", "farm_name", "section_id", "section_name", "field_id", "field_name",
        "scanned_code", "barcd", "crop", "owner", "submission_id", "extno", "range_val",
        "row_val", "plot_id", "subplot_id", "matid", "abbrc", "sd_instruction",
        "vform_record_type", "vdata_site", "vdata_year", "is_discarded", "user_id", "created_at",
    )

    def __init__(self, pool: DatabaseConnectionPool):
        self.pool = pool

    @staticmethod
    def _to_params(entry: DiscardEntry) -> tuple:
        return (
            entry.farm_id, entry.farm_name, entry.section_id, entry.section_name,
            entry.field_id, entry.field_name, entry.scanned_code, entry.barcode or entry.scanned_code,
            entry.crop, entry.owner, entry.submission_id, entry.extno, entry.range,
            entry.row, entry.plot_id, entry.subplot_id, entry.material_id, entry.abbrc,
            entry.sd_instruction, entry.record_type, entry.site, entry.year,
            entry.is_discarded, entry.user_id, entry.created_at,
        )

    @staticmethod
    def _from_row(row: dict) -> DiscardEntry:
        return DiscardEntry(
            entry_id=row["entry_id"],
            farm_id=row["farm_id"],
            farm_name=row["farm_name"],
            section_id=row["section_id"],
            section_name=row["section_name"],
            field_id=row["field_id"],
            field_name=row["field_name"],
            scanned_code=row["scanned_code"],
            barcode=row["barcd"],
            crop=row["crop"],
            owner=row["owner"],
            submission_id=row["submission_id"],
            extno=row["extno"],
            range=row["range_val"],
            row=row["row_val"],
            plot_id=row["plot_id"],
            subplot_id=row["subplot_id"],
            material_id=row["matid"],
            abbrc=row["abbrc"],
            sd_instruction=row["sd_instruction"],
            record_type=row["vform_record_type"],
            site=row["vdata_site"],
            year=row["vdata_year"],
            is_discarded=row["is_discarded"],
            user_id=row["user_id"],
            created_at=row["created_at"],
        )

    def insert(self, entry: DiscardEntry) -> DiscardEntry:
        placeholders = ", ".join(["%s"] * len(self.COLUMNS))
        command = f"""
            INSERT INTO discard_entry ({", ".join(self.COLUMNS)})
            VALUES ({placeholders})
            RETURNING entry_id
        """
        try:
            with track_duration(store_operation_duration_seconds, store="postgres_entries", operation="insert"):
                row = self.pool.execute_returning(command, self._to_params(entry))
        except psycopg.Error as e:
            increment_counter(store_errors_total, store="postgres_entries", operation="insert")
            logger.error(f"Discard entry insert failed: {e}", extra={"barcode": entry.barcode})
            raise PersistenceError("Error saving to the database", {"reason": str(e)}) from e

        return entry.model_copy(update={"entry_id": row["entry_id"]})

    def find_discarded(self, barcode: str) -> DiscardEntry | None:
        query = """
            SELECT * FROM discard_entry
            WHERE upper(btrim(barcd)) = %s AND is_discarded
            ORDER BY entry_id
            LIMIT 1
        """
        try:
            rows = self.pool.execute_query(query, (normalize_barcode(barcode),))
        except psycopg.Error as e:
            increment_counter(store_errors_total, store="postgres_entries", operation="query")
            raise PersistenceError("Could not read discard entries", {"reason": str(e)}) from e
        return self._from_row(rows[0]) if rows else None

    def list_entries(self, limit: int = 100) -> list[DiscardEntry]:
        query = "SELECT * FROM discard_entry ORDER BY created_at DESC, entry_id DESC LIMIT %s"
        try:
            rows = self.pool.execute_query(query, (limit,))
        except psycopg.Error as e:
            raise PersistenceError("Could not read discard entries", {"reason": str(e)}) from e
        return [self._from_row(row) for row in rows]
