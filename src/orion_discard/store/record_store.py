"""
Record store interface and the in-memory implementation.

A record store keeps flat attribute documents partitioned by
(site, year, record type). This workflow only ever queries by criteria and
replaces a single document by id; record creation belongs to the system
that imports the field books.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from orion_discard.core.errors import AlreadyDiscarded, DiscardError, NotDiscarded, PersistenceError
from orion_discard.core.models import DiscardRecord, ScopeCriteria
from orion_discard.observability.logger import get_logger

logger = get_logger(__name__)


def record_from_document(record_id: Any, document: Any, index: int = 0) -> DiscardRecord | None:
    """
    Turn a stored document into a DiscardRecord.

    The store's own id always wins over any id kept inside the document.
    Documents that are not attribute maps are skipped (None).
    """
    if not isinstance(document, Mapping):
        logger.warning(
            "Skipping stored record with invalid content format",
            extra={"record_id": str(record_id), "content_type": type(document).__name__},
        )
        return None
    return DiscardRecord.from_raw({**document, "id": str(record_id), "post_id": str(record_id)}, index)


def transition_conflict(current: DiscardRecord) -> DiscardError:
    """Error for a guarded update that found the record already in another state."""
    if current.is_discarded:
        return AlreadyDiscarded(
            current.barcode,
            discarded_at=current.discarded_at,
            discarded_by=current.discarded_by,
            record=current.to_row(),
        )
    return NotDiscarded(current.barcode, record=current.to_row())


class RecordStore(ABC):
    """
    Abstract record store.

    Implementations guarantee that ``update`` applies the whole document or
    nothing. Plain updates are last-write-wins; guarded updates
    (``expected_discarded``) are compare-and-set on the discard flag.
    """

    name = "abstract"

    @abstractmethod
    def query(self, scope: ScopeCriteria, field: str | None = None) -> list[DiscardRecord]:
        """
        Return every record in scope, optionally narrowed to one field.

        Args:
            scope: Partition to read
            field: Exact ``field`` value to keep (None or "" keeps all)

        Returns:
            Records in store order

        Raises:
            PersistenceError: If the store cannot be read
        """

    @abstractmethod
    def update(
        self, scope: ScopeCriteria, record: DiscardRecord, expected_discarded: bool | None = None
    ) -> DiscardRecord:
        """
        Replace the stored document of ``record.id`` with ``record``.

        With ``expected_discarded`` set, the write is a compare-and-set: it
        only applies while the stored discard flag still has that value,
        checked and written as one step.

        Args:
            scope: Partition the record belongs to
            record: Full record to persist
            expected_discarded: Required current discard flag (None skips the check)

        Returns:
            The record as stored

        Raises:
            AlreadyDiscarded: Stored record is discarded but pending was expected
            NotDiscarded: Stored record is pending but discarded was expected
            PersistenceError: If the id is unknown or the write fails
        """

    @abstractmethod
    def add(self, scope: ScopeCriteria, document: Mapping[str, Any]) -> DiscardRecord:
        """Insert a new document and return it with its assigned id."""

    def get(self, scope: ScopeCriteria, record_id: str) -> DiscardRecord | None:
        """Fetch one record by id (linear over the scope by default)."""
        for record in self.query(scope):
            if record.id == str(record_id):
                return record
        return None


class InMemoryRecordStore(RecordStore):
    """
    Record store held in process memory.

    Used by tests and by local runs of the station without a database.
    Documents are copied in and out so callers can never mutate stored state.
    """

    name = "memory"

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str, str], dict[str, dict[str, Any]]] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def add(self, scope: ScopeCriteria, document: Mapping[str, Any]) -> DiscardRecord:
        with self._lock:
            requested = document.get("id") or document.get("post_id")
            record_id = str(requested) if requested else str(self._next_id)
            if not requested:
                self._next_id += 1
            stored = {k: v for k, v in document.items() if k not in ("id", "post_id")}
            self._documents.setdefault(scope.key(), {})[record_id] = dict(stored)
        return record_from_document(record_id, stored)

    def add_raw(self, scope: ScopeCriteria, record_id: str, content: Any) -> None:
        """Store content as-is, including malformed (non-mapping) content."""
        with self._lock:
            self._documents.setdefault(scope.key(), {})[str(record_id)] = content

    def query(self, scope: ScopeCriteria, field: str | None = None) -> list[DiscardRecord]:
        with self._lock:
            documents = list(self._documents.get(scope.key(), {}).items())

        records = []
        for index, (record_id, content) in enumerate(documents):
            if field and (not isinstance(content, Mapping) or content.get("field") != field):
                continue
            record = record_from_document(record_id, dict(content) if isinstance(content, Mapping) else content, index)
            if record is not None:
                records.append(record)
        return records

    def update(
        self, scope: ScopeCriteria, record: DiscardRecord, expected_discarded: bool | None = None
    ) -> DiscardRecord:
        with self._lock:
            partition = self._documents.get(scope.key(), {})
            if record.id not in partition:
                raise PersistenceError(
                    "Invalid record ID",
                    {"record_id": record.id, "scope": scope.model_dump()},
                )
            if expected_discarded is not None:
                current = record_from_document(record.id, partition[record.id])
                if current is not None and current.is_discarded != expected_discarded:
                    raise transition_conflict(current)
            partition[record.id] = record.to_document()
            stored = dict(partition[record.id])
        return record_from_document(record.id, stored)

    def document(self, scope: ScopeCriteria, record_id: str) -> Any:
        """Raw stored content for a record (copy), or None."""
        with self._lock:
            content = self._documents.get(scope.key(), {}).get(str(record_id))
        return dict(content) if isinstance(content, Mapping) else content
