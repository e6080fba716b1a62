"""
Barcode validation, duplicate checking and discard marking.

The validator is the only component that mutates records: it flips
``is_discarded`` (and its stamps) on the single record whose barcode matches
a scan, after checking the record is not already discarded. The store
write itself is guarded on the flag, so two stations racing on the same
barcode cannot both mark it.
"""

from collections.abc import Callable, Iterable
from datetime import datetime

from orion_discard.core.barcodes import normalize_barcode
from orion_discard.core.errors import (
    AlreadyDiscarded,
    DiscardError,
    NotDiscarded,
    NotFound,
    ValidationError,
)
from orion_discard.core.models import (
    BarcodeStatus,
    BulkItemError,
    BulkValidationResult,
    DiscardRecord,
    DiscardStatistics,
    ScopeCriteria,
)
from orion_discard.observability.logger import get_logger, log_operation
from orion_discard.observability.metrics import record_lookup, record_transition
from orion_discard.store.record_store import RecordStore

logger = get_logger(__name__)


class BarcodeValidator:
    """
    Finds the record for a scanned barcode and applies discard transitions.

    Matching is trimmed and case-insensitive. The whole scope is scanned on
    every call (not just what a table currently shows), and the first match
    wins if a barcode is duplicated.
    """

    def __init__(
        self,
        store: RecordStore,
        default_actor: str = "0",
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the validator.

        Args:
            store: Record store to search and update
            default_actor: Actor id stamped when a call names none
            clock: Source of discard timestamps
        """
        self.store = store
        self.default_actor = default_actor
        self.clock = clock

    @staticmethod
    def _require_code(code: str | None) -> str:
        if code is None or str(code).strip() == "":
            raise ValidationError(["barcode"], message="Barcode is required")
        return str(code).strip()

    def find_record(self, scope: ScopeCriteria, barcode: str) -> DiscardRecord | None:
        """
        Linear scan of the scope for a barcode.

        Args:
            scope: Partition to search
            barcode: Barcode to look for

        Returns:
            First matching record, or None
        """
        wanted = normalize_barcode(barcode)
        if not wanted:
            return None
        for record in self.store.query(scope):
            if record.normalized_barcode == wanted:
                return record
        return None

    def check_status(self, scope: ScopeCriteria, barcode: str) -> BarcodeStatus:
        """
        Report whether a barcode exists and is discarded, without mutating.

        Args:
            scope: Partition to search
            barcode: Barcode to check

        Returns:
            BarcodeStatus with the matching record when found
        """
        code = self._require_code(barcode)
        record = self.find_record(scope, code)

        if record is None:
            record_lookup(scope.site, "not_found")
            return BarcodeStatus(exists=False, discarded=False, barcode=code, message="Barcode not found")

        record_lookup(scope.site, "already_discarded" if record.is_discarded else "found")
        return BarcodeStatus(
            exists=True,
            discarded=record.is_discarded,
            barcode=code,
            record=record,
            message="Barcode already discarded" if record.is_discarded else "Barcode found and available",
        )

    def validate_and_discard(
        self, scope: ScopeCriteria, scanned_code: str, actor: str | None = None
    ) -> DiscardRecord:
        """
        Mark the record for a scanned code as discarded.

        Args:
            scope: Partition to search
            scanned_code: Code read by the scanner
            actor: Operator id (defaults to ``default_actor``)

        Returns:
            The updated record, including its id

        Raises:
            ValidationError: If the code is blank
            NotFound: If no record carries the code
            AlreadyDiscarded: If the record was discarded before (nothing changes)
            PersistenceError: If the store rejects the write
        """
        code = self._require_code(scanned_code)
        record = self.find_record(scope, code)

        if record is None:
            record_lookup(scope.site, "not_found")
            raise NotFound("Barcode not found", barcode=code)

        if record.is_discarded:
            record_lookup(scope.site, "already_discarded")
            logger.info(
                "Rejected scan of already discarded barcode",
                extra={"barcode": code, "record_id": record.id, "discarded_at": record.discarded_at},
            )
            raise AlreadyDiscarded(
                code,
                discarded_at=record.discarded_at,
                discarded_by=record.discarded_by,
                record=record.to_row(),
            )

        record_lookup(scope.site, "found")
        updated = record.mark_discarded(actor or self.default_actor, self.clock())
        try:
            with log_operation("Mark discarded", logger=logger, barcode=code, record_id=record.id):
                stored = self.store.update(scope, updated, expected_discarded=False)
        except AlreadyDiscarded:
            record_lookup(scope.site, "already_discarded")
            raise

        record_transition(scope.site, "mark")
        return stored

    def unmark_discard(self, scope: ScopeCriteria, barcode: str) -> DiscardRecord:
        """
        Clear the discard flag of a record (administrative undo).

        Raises:
            NotFound: If no record carries the barcode
            NotDiscarded: If the record is not discarded
            PersistenceError: If the store rejects the write
        """
        code = self._require_code(barcode)
        record = self.find_record(scope, code)

        if record is None:
            raise NotFound("Barcode not found", barcode=code)

        if not record.is_discarded:
            raise NotDiscarded(code, record=record.to_row())

        with log_operation("Unmark discarded", logger=logger, barcode=code, record_id=record.id):
            stored = self.store.update(scope, record.unmarked(), expected_discarded=True)

        record_transition(scope.site, "unmark")
        return stored

    def bulk_validate(
        self, scope: ScopeCriteria, barcodes: Iterable[str], actor: str | None = None
    ) -> BulkValidationResult:
        """
        Validate and discard many barcodes, each independently.

        Args:
            scope: Partition to search
            barcodes: Codes to process, in order
            actor: Operator id

        Returns:
            Results partitioned into succeeded, already_discarded, not_found
            and other_errors
        """
        codes = list(barcodes)
        result = BulkValidationResult()
        result.summary.total = len(codes)

        for code in codes:
            result.summary.processed += 1
            try:
                self.validate_and_discard(scope, code, actor=actor)
            except NotFound:
                result.not_found.append(code)
            except AlreadyDiscarded:
                result.already_discarded.append(code)
            except DiscardError as e:
                result.other_errors.append(BulkItemError(barcode=str(code), error=e.message))
            else:
                result.succeeded.append(code)
                result.summary.success_count += 1
                continue
            result.summary.error_count += 1

        logger.info(
            "Bulk validation finished",
            extra={"scope": scope.model_dump(), **result.summary.model_dump()},
        )
        return result

    def statistics(self, scope: ScopeCriteria, field: str | None = None) -> DiscardStatistics:
        """
        Count discarded and pending records in scope.

        Args:
            scope: Partition to count
            field: Optional exact field filter

        Returns:
            DiscardStatistics
        """
        records = self.store.query(scope, field=field)
        discarded = sum(1 for record in records if record.is_discarded)
        return DiscardStatistics.from_counts(len(records), discarded)
