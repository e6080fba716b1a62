"""
Discard service: the request/response operations the station calls.

Each operation takes a flat payload, validates it, talks to the record store
and entry log, and answers with an envelope:

    {"success": true, "data": ...}
    {"success": false, "error": {"code", "message", "details"}}

Handlers are stateless per request.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from orion_discard.config import Settings
from orion_discard.core.errors import (
    AlreadyDiscarded,
    DiscardError,
    NotFound,
    PersistenceError,
    ValidationError,
)
from orion_discard.core.models import DiscardEntry, DiscardRecord, ScopeCriteria
from orion_discard.core.validators import BarcodeValidator, SubmissionRules
from orion_discard.observability.logger import get_logger
from orion_discard.observability.metrics import record_scan
from orion_discard.store.entry_log import DiscardEntryLog
from orion_discard.store.record_store import RecordStore

logger = get_logger(__name__)

# Record attributes copied onto a discard entry when the scanned record is known
ENTRY_EXTRA_KEYS = ("crop", "owner", "submission_id", "extno", "abbrc", "sd_instruction")


def success(data: Any = None) -> dict[str, Any]:
    return {"success": True, "data": data}


def failure(error: DiscardError) -> dict[str, Any]:
    return {"success": False, "error": error.to_dict()}


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value).strip()


class DiscardService:
    """
    Server side of the discard station.

    Owns no state between requests; everything lives in the record store and
    the entry log.
    """

    def __init__(
        self,
        store: RecordStore,
        entry_log: DiscardEntryLog,
        settings: Settings | None = None,
        validator: BarcodeValidator | None = None,
        rules: SubmissionRules | None = None,
    ):
        """
        Initialize the service.

        Args:
            store: Record store holding the field-book records
            entry_log: Log of submitted discards
            settings: Station settings (defaults used when None)
            validator: Barcode validator (built on ``store`` when None)
            rules: Submission input rules
        """
        self.store = store
        self.entry_log = entry_log
        self.settings = settings or Settings()
        self.validator = validator or BarcodeValidator(store, default_actor=self.settings.actor)
        self.rules = rules or SubmissionRules()
        self._handlers = {
            "fetch_records": self.fetch_records,
            "check_duplicate": self.check_duplicate,
            "validate_and_discard": self.validate_and_discard,
            "submit_discard": self.submit_discard,
            "unmark_discard": self.unmark_discard,
            "bulk_validate": self.bulk_validate,
            "statistics": self.statistics,
        }

    # =======================
    # DISPATCH
    # =======================

    def handle(self, action: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run one operation and wrap its result in an envelope.

        Args:
            action: Operation name (e.g., "submit_discard")
            payload: Request fields

        Returns:
            Success or failure envelope; never raises
        """
        handler = self._handlers.get(action)
        if handler is None:
            return failure(ValidationError(["action"], message=f"Unknown action: {action}"))

        try:
            return success(handler(dict(payload or {})))
        except DiscardError as e:
            logger.info(
                f"{action} failed: {e.message}",
                extra={"action": action, "error_code": e.code},
            )
            return failure(e)
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            return failure(ValidationError(fields or ["payload"]))
        except Exception as e:
            logger.error(f"{action} crashed: {e}", extra={"action": action}, exc_info=True)
            return failure(DiscardError("Could not complete the operation"))

    # =======================
    # OPERATIONS
    # =======================

    def scope_from(self, payload: dict[str, Any]) -> ScopeCriteria:
        """Build the scope of a request, falling back to station defaults for site and year."""
        return ScopeCriteria.build(
            self.settings.resolve_site(_text(payload, "site")),
            self.settings.resolve_year(_text(payload, "year")),
            _text(payload, "record_type") or self.settings.record_type,
        )

    def fetch_records(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Records of one field in scope.

        Raises:
            ValidationError: If site, year, record type or field is missing
            NotFound: If nothing matches
        """
        missing = [key for key in ("site", "year", "record_type", "field") if not _text(payload, key)]
        if missing:
            raise ValidationError(missing, message="Missing required parameters: " + ", ".join(missing))

        scope = ScopeCriteria.build(payload["site"], payload["year"], payload["record_type"])
        records = self.store.query(scope, field=_text(payload, "field"))
        if not records:
            raise NotFound("No data found for the specified criteria", details={"field": _text(payload, "field")})

        logger.info(
            "Records fetched",
            extra={"scope": scope.model_dump(), "field": payload["field"], "count": len(records)},
        )
        return [record.to_payload() for record in records]

    def check_duplicate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Whether a barcode was already discarded, in the record store or the entry log.

        Returns:
            ``{"exists", "discarded", "barcode", "record"}``
        """
        barcode = _text(payload, "barcode")
        if not barcode:
            raise ValidationError(["barcode"], message="Barcode is required")

        status = self.validator.check_status(self.scope_from(payload), barcode)
        exists, discarded = status.exists, status.discarded
        if not discarded and self.entry_log.find_discarded(barcode) is not None:
            exists, discarded = True, True

        return {
            "exists": exists,
            "discarded": discarded,
            "barcode": barcode,
            "record": status.record.to_payload() if status.record else None,
        }

    def validate_and_discard(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Mark the record of a barcode as discarded; returns the updated record."""
        scope = ScopeCriteria.build(payload.get("site"), payload.get("year"), payload.get("record_type"))
        record = self.validator.validate_and_discard(
            scope, _text(payload, "barcode"), actor=_text(payload, "actor") or None
        )
        return record.to_payload()

    def unmark_discard(self, payload: dict[str, Any]) -> dict[str, Any]:
        scope = ScopeCriteria.build(payload.get("site"), payload.get("year"), payload.get("record_type"))
        return self.validator.unmark_discard(scope, _text(payload, "barcode")).to_payload()

    def bulk_validate(self, payload: dict[str, Any]) -> dict[str, Any]:
        scope = ScopeCriteria.build(payload.get("site"), payload.get("year"), payload.get("record_type"))
        barcodes = payload.get("barcodes")
        if not isinstance(barcodes, list):
            raise ValidationError(["barcodes"], message="Barcodes must be a list")
        result = self.validator.bulk_validate(scope, barcodes, actor=_text(payload, "actor") or None)
        return result.model_dump()

    def statistics(self, payload: dict[str, Any]) -> dict[str, Any]:
        scope = ScopeCriteria.build(payload.get("site"), payload.get("year"), payload.get("record_type"))
        return self.validator.statistics(scope, field=_text(payload, "field") or None).model_dump()

    def submit_discard(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Record a scan from the station.

        Inputs are checked before anything else touches the stores, and every
        missing input is reported together. When the scanned barcode belongs
        to a record in scope, that record is marked discarded too; if writing
        the entry then fails, the record is restored.

        Returns:
            ``{"message", "entry", "record"}`` where ``record`` is the updated
            record or None when the code matched no record

        Raises:
            ValidationError: Missing inputs
            AlreadyDiscarded: The code was discarded before
            PersistenceError: A write failed
        """
        site = self.settings.resolve_site(_text(payload, "site"))
        try:
            self.rules.check(
                {
                    **payload,
                    "site": site,
                    "year": self.settings.resolve_year(_text(payload, "year")),
                    "record_type": _text(payload, "record_type") or self.settings.record_type,
                }
            )
        except ValidationError:
            record_scan(site, "validation_error")
            raise

        scope = self.scope_from(payload)
        scanned_code = _text(payload, "scanned_code")
        barcode = _text(payload, "barcode") or scanned_code
        actor = _text(payload, "actor") or self.settings.actor

        status = self.validator.check_status(scope, barcode)
        if status.discarded:
            record_scan(site, "conflict")
            raise AlreadyDiscarded(
                barcode,
                discarded_at=status.record.discarded_at,
                discarded_by=status.record.discarded_by,
                record=status.record.to_row(),
            )

        previous = self.entry_log.find_discarded(barcode)
        if previous is not None:
            record_scan(site, "conflict")
            raise AlreadyDiscarded(
                barcode,
                discarded_at=previous.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                discarded_by=previous.user_id,
            )

        original: DiscardRecord | None = status.record
        try:
            updated = self.validator.validate_and_discard(scope, barcode, actor=actor) if original else None
        except AlreadyDiscarded:
            record_scan(site, "conflict")
            raise

        entry = self._build_entry(payload, scope, scanned_code, barcode, actor, updated)
        try:
            stored_entry = self.entry_log.insert(entry)
        except PersistenceError:
            record_scan(site, "failed")
            if original is not None:
                self._restore(scope, original, barcode)
            raise

        record_scan(site, "success")
        logger.info(
            "Discard recorded",
            extra={
                "barcode": barcode,
                "entry_id": stored_entry.entry_id,
                "record_id": updated.id if updated else None,
                "field": entry.field_id,
            },
        )
        return {
            "message": "Discard recorded successfully",
            "entry": stored_entry.model_dump(mode="json"),
            "record": updated.to_payload() if updated else None,
        }

    def _restore(self, scope: ScopeCriteria, original: DiscardRecord, barcode: str) -> None:
        """Put back a record whose entry write failed; the entry error is the one reported."""
        try:
            self.store.update(scope, original, expected_discarded=True)
        except DiscardError:
            logger.error(
                "Could not restore record after failed entry write",
                extra={"record_id": original.id, "barcode": barcode},
                exc_info=True,
            )
            return
        logger.warning(
            "Restored record after failed entry write",
            extra={"record_id": original.id, "barcode": barcode},
        )

    @staticmethod
    def _build_entry(
        payload: dict[str, Any],
        scope: ScopeCriteria,
        scanned_code: str,
        barcode: str,
        actor: str,
        record: DiscardRecord | None,
    ) -> DiscardEntry:
        metadata = {key: _text(payload, key) for key in ENTRY_EXTRA_KEYS}
        descriptive = {
            "range": _text(payload, "range"),
            "row": _text(payload, "row"),
            "plot_id": _text(payload, "plot_id"),
            "subplot_id": _text(payload, "subplot_id"),
            "material_id": _text(payload, "material_id"),
        }
        if record is not None:
            descriptive = {
                "range": record.range,
                "row": record.row,
                "plot_id": record.plot_id,
                "subplot_id": record.subplot_id,
                "material_id": record.material_id,
            }
            for key in ENTRY_EXTRA_KEYS:
                if not metadata[key] and record.extra.get(key) is not None:
                    metadata[key] = str(record.extra[key]).strip()

        return DiscardEntry(
            farm_id=_text(payload, "farm_id"),
            farm_name=_text(payload, "farm_name"),
            section_id=_text(payload, "section_id"),
            section_name=_text(payload, "section_name"),
            field_id=_text(payload, "field_id"),
            field_name=_text(payload, "field_name"),
            scanned_code=scanned_code,
            barcode=barcode,
            site=scope.site,
            year=scope.year,
            record_type=scope.record_type,
            user_id=actor,
            **descriptive,
            **metadata,
        )
