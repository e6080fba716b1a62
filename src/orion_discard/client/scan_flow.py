"""
Scan submission flow.

    Idle -> Validating -> Conflict                      (acknowledge -> Idle)
                       -> Submitting -> Success | Failed -> Idle

Only one submission runs at a time; a submit while one is in flight, or
while a conflict is waiting for acknowledgement, is rejected.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orion_discard.client.api import DiscardClient
from orion_discard.client.listener import LEVEL_ERROR, LEVEL_SUCCESS, FlowListener, LoggingListener
from orion_discard.client.selector import CascadingSelector
from orion_discard.core.barcodes import clean_barcode
from orion_discard.core.errors import AlreadyDiscarded, DiscardError, ValidationError
from orion_discard.core.models import DiscardRecord, ScopeCriteria
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import record_scan
from orion_discard.table import TableSynchronizer

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Discard recorded successfully"
BUSY_MESSAGE = "A submission is already in progress"


class ScanState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CONFLICT = "conflict"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class ScanOutcome(str, Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    FAILED = "failed"
    INVALID = "invalid"
    BUSY = "busy"


@dataclass
class ScanResult:
    outcome: ScanOutcome
    message: str = ""
    error: DiscardError | None = None
    record: DiscardRecord | None = None


class ScanSubmissionFlow:
    """
    Turns a scanned code plus the current selection into a discard entry.
    """

    def __init__(
        self,
        client: DiscardClient,
        selector: CascadingSelector,
        table: TableSynchronizer,
        scope: ScopeCriteria,
        listener: FlowListener | None = None,
        actor: str | None = None,
    ):
        self.client = client
        self.selector = selector
        self.table = table
        self.scope = scope
        self.listener = listener or LoggingListener()
        self.actor = actor
        self.state = ScanState.IDLE
        self.scanned_code = ""
        self.conflict: dict[str, Any] | None = None

    def set_scanned_code(self, code: str) -> None:
        self.scanned_code = code or ""

    def acknowledge_conflict(self) -> None:
        """Close the already-discarded notice and return to Idle."""
        if self.state == ScanState.CONFLICT:
            self.state = ScanState.IDLE
            self.conflict = None

    def _payload(self, code: str) -> dict[str, Any]:
        selection = self.selector.selection
        return {
            "farm_id": selection.farm_id,
            "farm_name": selection.farm_name,
            "section_id": selection.section_id,
            "section_name": selection.section_name,
            "field_id": selection.field_id,
            "field_name": selection.field_name,
            "scanned_code": code,
            "site": self.scope.site,
            "year": self.scope.year,
            "record_type": self.scope.record_type,
            "actor": self.actor,
        }

    def _enter_conflict(self, code: str, details: dict[str, Any], counted: bool = False) -> ScanResult:
        self.state = ScanState.CONFLICT
        self.conflict = {"barcode": code, **details}
        if not counted:
            record_scan(self.scope.site, "conflict")
        self.listener.on_conflict(code, details)
        return ScanResult(ScanOutcome.CONFLICT, message="This item has already been discarded")

    def _fail(self, error: DiscardError) -> ScanResult:
        self.state = ScanState.FAILED
        self.listener.on_message(error.message, LEVEL_ERROR)
        self.state = ScanState.IDLE
        return ScanResult(ScanOutcome.FAILED, message=error.message, error=error)

    async def submit(self) -> ScanResult:
        """
        Submit the current scan.

        Returns:
            ScanResult describing what happened; failures are reported to the
            listener and never raised
        """
        if self.state != ScanState.IDLE:
            record_scan(self.scope.site, "rejected_busy")
            logger.info("Rejected submit while busy", extra={"state": self.state.value})
            return ScanResult(ScanOutcome.BUSY, message=BUSY_MESSAGE)

        code = clean_barcode(self.scanned_code)
        missing = self.selector.missing()
        if not code:
            missing.append("scanned code")
        if missing:
            error = ValidationError(missing)
            record_scan(self.scope.site, "validation_error")
            self.listener.on_message(error.message, LEVEL_ERROR)
            return ScanResult(ScanOutcome.INVALID, message=error.message, error=error)

        self.state = ScanState.VALIDATING
        self.listener.on_busy(True)
        try:
            try:
                status = await self.client.check_duplicate(self.scope, code)
            except DiscardError as e:
                return self._fail(e)
            if status.get("discarded"):
                record = status.get("record") or {}
                return self._enter_conflict(
                    code,
                    {"discarded_at": record.get("discarded_at"), "discarded_by": record.get("discarded_by")},
                )

            self.state = ScanState.SUBMITTING
            try:
                confirmation = await self.client.submit_discard(self._payload(code))
            except AlreadyDiscarded as e:
                return self._enter_conflict(
                    code, {"discarded_at": e.discarded_at, "discarded_by": e.discarded_by}, counted=True
                )
            except DiscardError as e:
                return self._fail(e)
        finally:
            self.listener.on_busy(False)

        self.state = ScanState.SUCCESS
        record = self._refresh_table(code, confirmation.get("record"))
        self.listener.on_message(SUCCESS_MESSAGE, LEVEL_SUCCESS)
        self.scanned_code = ""
        await self.selector.reset()
        self.state = ScanState.IDLE
        logger.info("Scan submitted", extra={"barcode": code, "record_id": record.id if record else None})
        return ScanResult(ScanOutcome.SUCCESS, message=SUCCESS_MESSAGE, record=record)

    def _refresh_table(self, code: str, raw_record: Any) -> DiscardRecord | None:
        if isinstance(raw_record, dict):
            record = DiscardRecord.from_raw(raw_record)
            if not self.table.update_record(record):
                self.table.update_status_by_barcode(code)
            return record
        self.table.update_status_by_barcode(code)
        return None
