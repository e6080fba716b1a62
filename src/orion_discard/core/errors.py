"""
Error taxonomy for the discard workflow.

Every failure that can reach an operator is one of these. Store drivers,
HTTP clients and pydantic are translated into this taxonomy at the adapter
boundary so flows only ever handle DiscardError.
"""

from typing import Any


class DiscardError(Exception):
    """Base class for all workflow failures."""

    code = "discard_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a response envelope."""
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(DiscardError):
    """
    Missing or malformed client input.

    Carries every problem found, not just the first, so the operator can
    fix them all at once.
    """

    code = "validation_error"

    def __init__(self, problems: list[str], message: str | None = None):
        self.problems = list(problems)
        super().__init__(
            message or "Please complete all fields: " + ", ".join(self.problems),
            {"problems": self.problems},
        )


class NotFound(DiscardError):
    """No record matches the request."""

    code = "not_found"

    def __init__(self, message: str, barcode: str | None = None, details: dict[str, Any] | None = None):
        self.barcode = barcode
        payload = dict(details or {})
        if barcode is not None:
            payload["barcode"] = barcode
        super().__init__(message, payload)


class AlreadyDiscarded(DiscardError):
    """The barcode belongs to a record that was discarded before."""

    code = "already_discarded"

    def __init__(
        self,
        barcode: str,
        discarded_at: str | None = None,
        discarded_by: str | None = None,
        record: dict[str, Any] | None = None,
    ):
        self.barcode = barcode
        self.discarded_at = discarded_at
        self.discarded_by = discarded_by
        self.record = record
        super().__init__(
            "Barcode already discarded",
            {
                "barcode": barcode,
                "discarded_at": discarded_at or "unknown",
                "discarded_by": discarded_by or "unknown",
                "record": record,
            },
        )


class NotDiscarded(DiscardError):
    """Unmark was requested for a record that is not discarded."""

    code = "not_discarded"

    def __init__(self, barcode: str, record: dict[str, Any] | None = None):
        self.barcode = barcode
        super().__init__(
            "Barcode is not marked as discarded",
            {"barcode": barcode, "record": record},
        )


class PersistenceError(DiscardError):
    """A store write (or read) failed; nothing was applied."""

    code = "persistence_error"


class DependencyUnavailable(DiscardError):
    """A required collaborator (options source, store, renderer) is missing or down."""

    code = "dependency_unavailable"

    def __init__(self, dependency: str, message: str | None = None):
        self.dependency = dependency
        super().__init__(message or f"{dependency} is not available", {"dependency": dependency})


ERROR_CLASSES: dict[str, type[DiscardError]] = {
    cls.code: cls
    for cls in (
        DiscardError,
        ValidationError,
        NotFound,
        AlreadyDiscarded,
        NotDiscarded,
        PersistenceError,
        DependencyUnavailable,
    )
}


def error_from_dict(payload: dict[str, Any] | None) -> DiscardError:
    """
    Rebuild a DiscardError from a failure envelope's ``error`` object.

    Unknown codes and malformed payloads become a plain DiscardError carrying
    whatever message was available.

    Args:
        payload: The ``{"code", "message", "details"}`` mapping

    Returns:
        The matching DiscardError subclass instance
    """
    if not isinstance(payload, dict):
        return DiscardError("Could not complete the operation")

    code = payload.get("code")
    message = str(payload.get("message") or "Could not complete the operation")
    details = payload.get("details") or {}
    if not isinstance(details, dict):
        details = {}

    if code == ValidationError.code:
        return ValidationError(list(details.get("problems") or []), message=message)
    if code == NotFound.code:
        return NotFound(message, barcode=details.get("barcode"), details=details)
    if code == AlreadyDiscarded.code:
        return AlreadyDiscarded(
            details.get("barcode", ""),
            discarded_at=details.get("discarded_at"),
            discarded_by=details.get("discarded_by"),
            record=details.get("record"),
        )
    if code == NotDiscarded.code:
        return NotDiscarded(details.get("barcode", ""), record=details.get("record"))
    if code == DependencyUnavailable.code:
        return DependencyUnavailable(details.get("dependency", "service"), message)

    cls = ERROR_CLASSES.get(code, DiscardError)
    return cls(message, details)
