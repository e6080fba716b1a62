"""
Result models returned by barcode checks, bulk validation and statistics.
"""

from pydantic import BaseModel, Field

from .discard_record import DiscardRecord


class BarcodeStatus(BaseModel):
    """
    Read-only answer to "does this barcode exist, and is it discarded?".

    Attributes:
        exists: A record with this barcode is in scope
        discarded: That record is already discarded
        barcode: The barcode that was searched
        record: The matching record, when one exists
        message: Human-readable summary
    """

    exists: bool
    discarded: bool = False
    barcode: str
    record: DiscardRecord | None = None
    message: str = ""


class BulkItemError(BaseModel):
    barcode: str
    error: str


class BulkSummary(BaseModel):
    total: int = 0
    processed: int = 0
    success_count: int = 0
    error_count: int = 0


class BulkValidationResult(BaseModel):
    """
    Outcome of validating many barcodes, partitioned per result.

    Each barcode is processed independently; one failure never stops the rest.
    """

    succeeded: list[str] = Field(default_factory=list)
    already_discarded: list[str] = Field(default_factory=list)
    not_found: list[str] = Field(default_factory=list)
    other_errors: list[BulkItemError] = Field(default_factory=list)
    summary: BulkSummary = Field(default_factory=BulkSummary)


class DiscardStatistics(BaseModel):
    """
    Discard progress for a scope (and optional field).

    Attributes:
        total: Records in scope
        discarded: Records already discarded
        pending: Records still pending
        percentage: Discarded share, rounded to an integer percent
    """

    total: int = 0
    discarded: int = 0
    pending: int = 0
    percentage: int = 0

    @classmethod
    def from_counts(cls, total: int, discarded: int) -> "DiscardStatistics":
        percentage = round(discarded / total * 100) if total > 0 else 0
        return cls(total=total, discarded=discarded, pending=total - discarded, percentage=percentage)
