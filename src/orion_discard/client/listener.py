"""
Listener protocol through which the station's flows report to the operator.
"""

from typing import Protocol

from orion_discard.observability.logger import get_logger

logger = get_logger(__name__)

LEVEL_INFO = "info"
LEVEL_SUCCESS = "success"
LEVEL_WARNING = "warning"
LEVEL_ERROR = "error"


class FlowListener(Protocol):
    """What a view implements to show station feedback."""

    def on_message(self, text: str, level: str) -> None:
        """Show a one-line message (info, success, warning or error)."""

    def on_loading(self, loading: bool) -> None:
        """Show or hide the loading indicator."""

    def on_busy(self, busy: bool) -> None:
        """Disable or enable the submit control."""

    def on_conflict(self, barcode: str, details: dict) -> None:
        """Show the already-discarded modal."""


class LoggingListener:
    """Headless listener that writes feedback to the log."""

    def on_message(self, text: str, level: str) -> None:
        log = logger.warning if level in (LEVEL_WARNING, LEVEL_ERROR) else logger.info
        log(text, extra={"level_hint": level})

    def on_loading(self, loading: bool) -> None:
        logger.debug("Loading indicator changed", extra={"loading": loading})

    def on_busy(self, busy: bool) -> None:
        logger.debug("Submit control changed", extra={"busy": busy})

    def on_conflict(self, barcode: str, details: dict) -> None:
        logger.warning(
            "This item has already been discarded",
            extra={"barcode": barcode, "discarded_at": details.get("discarded_at")},
        )
