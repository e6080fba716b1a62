"""
Core data models for the discard workflow.

All models use Pydantic for runtime validation and type safety.
"""

from .discard_entry import DiscardEntry
from .discard_record import STATUS_DISCARDED, STATUS_PENDING, DiscardRecord
from .field_option import FieldOption
from .results import BarcodeStatus, BulkItemError, BulkSummary, BulkValidationResult, DiscardStatistics
from .scope import ScopeCriteria

__all__ = [
    "ScopeCriteria",
    "DiscardRecord",
    "DiscardEntry",
    "FieldOption",
    "BarcodeStatus",
    "BulkItemError",
    "BulkSummary",
    "BulkValidationResult",
    "DiscardStatistics",
    "STATUS_DISCARDED",
    "STATUS_PENDING",
]
