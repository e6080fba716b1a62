"""
Table synchronizer: the indexed in-memory view of the loaded record set.

Rows keep the order they were loaded in. Two indexes sit beside them:
record id -> row position, and normalized barcode -> record ids. Every
mutation keeps both coherent with the rows.
"""

from typing import Any

from orion_discard.core.barcodes import normalize_barcode
from orion_discard.core.errors import ValidationError
from orion_discard.core.models import STATUS_DISCARDED, STATUS_PENDING, DiscardRecord
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import increment_counter, record_table_state, table_loads_total
from orion_discard.table.renderer import TableRenderer

logger = get_logger(__name__)

DEFAULT_MAX_RECORDS = 10000


class TableSynchronizer:
    """
    Holds the displayed records and applies single-row status updates.

    Works headless when no renderer is given.
    """

    def __init__(self, renderer: TableRenderer | None = None, max_records: int = DEFAULT_MAX_RECORDS):
        """
        Initialize the synchronizer.

        Args:
            renderer: Optional renderer redrawn on every change
            max_records: Largest record set ``load`` accepts
        """
        self.renderer = renderer
        self.max_records = max_records
        self._rows: list[DiscardRecord] = []
        self._positions: dict[str, int] = {}
        self._barcodes: dict[str, list[str]] = {}
        self._discarded = 0

    # =======================
    # LOADING
    # =======================

    def load(self, records: Any) -> bool:
        """
        Replace the table contents with a new record set.

        Each entry is normalized; entries that are not mappings still become
        a row (flagged), so nothing is silently dropped.

        Args:
            records: List of raw record mappings or DiscardRecords

        Returns:
            True once the table shows the new set

        Raises:
            ValidationError: If ``records`` is not a list or exceeds
                ``max_records``; the previous contents stay as they were
        """
        if not isinstance(records, (list, tuple)):
            increment_counter(table_loads_total, 1, status="rejected")
            raise ValidationError(["records"], message="Records must be a list")
        if len(records) > self.max_records:
            increment_counter(table_loads_total, 1, status="rejected")
            raise ValidationError(
                ["records"],
                message=f"Too many records: {len(records)} (maximum {self.max_records})",
            )

        rows = [DiscardRecord.from_raw(raw, index) for index, raw in enumerate(records)]
        self._rows = rows
        self._reindex()
        self._render_all()

        increment_counter(table_loads_total, 1, status="success")
        logger.info(
            "Table loaded",
            extra={"rows": len(rows), "discarded": self._discarded},
        )
        return True

    def clear(self) -> bool:
        """Empty the table and its indexes."""
        self._rows = []
        self._reindex()
        self._render_all()
        return True

    def _reindex(self) -> None:
        self._positions = {}
        self._barcodes = {}
        self._discarded = 0
        for position, record in enumerate(self._rows):
            if record.id in self._positions:
                logger.warning(
                    "Duplicate record id in table; lookups use the first row",
                    extra={"record_id": record.id, "position": position},
                )
            else:
                self._positions[record.id] = position
            if record.normalized_barcode:
                self._barcodes.setdefault(record.normalized_barcode, []).append(record.id)
            if record.is_discarded:
                self._discarded += 1
        record_table_state(self._discarded, len(self._rows) - self._discarded)

    def _render_all(self) -> None:
        if self.renderer is not None:
            self.renderer.render_all([record.to_row() for record in self._rows])

    # =======================
    # UPDATES
    # =======================

    def _position_of(self, record_id: str) -> int | None:
        position = self._positions.get(record_id)
        if position is not None and position < len(self._rows) and self._rows[position].id == record_id:
            return position

        # Index miss: fall back to a scan and repair the index
        for position, record in enumerate(self._rows):
            if record.id == record_id:
                logger.debug("Record index repaired", extra={"record_id": record_id})
                self._positions[record_id] = position
                return position
        return None

    def _replace(self, position: int, record: DiscardRecord) -> None:
        previous = self._rows[position]
        self._rows[position] = record
        self._discarded += int(record.is_discarded) - int(previous.is_discarded)

        if previous.normalized_barcode != record.normalized_barcode:
            ids = self._barcodes.get(previous.normalized_barcode, [])
            if record.id in ids:
                ids.remove(record.id)
                if not ids:
                    del self._barcodes[previous.normalized_barcode]
            if record.normalized_barcode:
                self._barcodes.setdefault(record.normalized_barcode, []).append(record.id)

        record_table_state(self._discarded, len(self._rows) - self._discarded)
        if self.renderer is not None:
            self.renderer.render_row(position, record.to_row())

    def update_status_by_id(self, record_id: Any, new_status: str = STATUS_DISCARDED) -> bool:
        """
        Change the displayed status of one row, redrawing only that row.

        Args:
            record_id: Record id (``post_id`` values resolve the same way)
            new_status: STATUS_DISCARDED or STATUS_PENDING

        Returns:
            True if a row was updated, False if the id is not in the table

        Raises:
            ValueError: If ``new_status`` is not a known status
        """
        if new_status not in (STATUS_DISCARDED, STATUS_PENDING):
            raise ValueError(f"Unknown status: {new_status}")

        position = self._position_of(str(record_id).strip())
        if position is None:
            logger.debug("Status update for unknown record id", extra={"record_id": str(record_id)})
            return False

        self._replace(position, self._rows[position].with_status(new_status))
        return True

    def update_status_by_barcode(self, barcode: str, new_status: str = STATUS_DISCARDED) -> bool:
        """
        Change the status of the row carrying a barcode.

        Matching is trimmed and case-insensitive; when a barcode appears on
        several rows, the first loaded row is updated.
        """
        matches = self.find_by_barcode(barcode)
        if not matches:
            return False
        return self.update_status_by_id(matches[0].id, new_status)

    def update_record(self, record: DiscardRecord) -> bool:
        """
        Replace a row with a fresher copy of the same record.

        Used after a discard so the row carries the new stamps, not just the
        new status.
        """
        position = self._position_of(record.id)
        if position is None:
            return False
        self._replace(position, record.model_copy(deep=True))
        return True

    # =======================
    # QUERIES
    # =======================

    def find_by_barcode(self, barcode: str) -> list[DiscardRecord]:
        wanted = normalize_barcode(barcode)
        if not wanted:
            return []
        ids = self._barcodes.get(wanted)
        if ids is None:
            return [record.model_copy(deep=True) for record in self._rows if record.normalized_barcode == wanted]
        found = []
        for record_id in ids:
            position = self._position_of(record_id)
            if position is not None:
                found.append(self._rows[position].model_copy(deep=True))
        return found

    @property
    def rows(self) -> list[DiscardRecord]:
        """Copies of the displayed records, in display order."""
        return [record.model_copy(deep=True) for record in self._rows]

    def get_data(self) -> list[dict[str, Any]]:
        return [record.to_row() for record in self._rows]

    def __len__(self) -> int:
        return len(self._rows)

    def statistics(self) -> dict[str, int]:
        """Counts over the displayed rows: ``{"total", "completed", "pending"}``."""
        total = len(self._rows)
        return {"total": total, "completed": self._discarded, "pending": total - self._discarded}

    def check_consistency(self) -> bool:
        """Whether every index entry points at a row carrying that id and barcode."""
        for record_id, position in self._positions.items():
            if position >= len(self._rows) or self._rows[position].id != record_id:
                return False
        for barcode, barcode_ids in self._barcodes.items():
            for record_id in barcode_ids:
                position = self._positions.get(record_id)
                if position is None or self._rows[position].normalized_barcode != barcode:
                    return False
        return True
