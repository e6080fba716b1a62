"""
DiscardRecord model representing one discardable unit of material.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from orion_discard.core.barcodes import normalize_barcode

STATUS_DISCARDED = "Discarded"
STATUS_PENDING = "Pending"

# Raw document keys (as stored) that map onto core attributes. The first
# non-empty key in each tuple wins.
ID_KEYS = ("id", "record_id", "post_id")
BARCODE_KEYS = ("barcd", "barcode")
FIELD_KEYS = ("field",)
RANGE_KEYS = ("range_val", "range")
ROW_KEYS = ("row_val", "row")
PLOT_KEYS = ("plot_id", "plotId")
SUBPLOT_KEYS = ("subplot_id", "subplotId")
MATERIAL_KEYS = ("matid", "materialId", "material_id")
DISCARDED_KEYS = ("isDiscarded", "is_discarded")
DISCARDED_AT_KEYS = ("discarded_at", "discardedAt")
DISCARDED_BY_KEYS = ("discarded_by", "discardedBy")

# Derived or display-only keys that are never kept in the extra bag
DERIVED_KEYS = ("status", "_processed_at", "_original")

KNOWN_KEYS = frozenset(
    ID_KEYS + BARCODE_KEYS + FIELD_KEYS + RANGE_KEYS + ROW_KEYS + PLOT_KEYS
    + SUBPLOT_KEYS + MATERIAL_KEYS + DISCARDED_KEYS + DISCARDED_AT_KEYS
    + DISCARDED_BY_KEYS + DERIVED_KEYS
)

# Core attribute -> accepted document keys; the first tuple entry is the
# canonical key written for records that did not come from a document.
DOCUMENT_KEYS = {
    "barcode": BARCODE_KEYS,
    "field": FIELD_KEYS,
    "range": RANGE_KEYS,
    "row": ROW_KEYS,
    "plot_id": PLOT_KEYS,
    "subplot_id": SUBPLOT_KEYS,
    "material_id": MATERIAL_KEYS,
    "is_discarded": DISCARDED_KEYS,
    "discarded_at": DISCARDED_AT_KEYS,
    "discarded_by": DISCARDED_BY_KEYS,
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "y", "on"})


def _first_key(raw: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[str | None, Any]:
    for key in keys:
        value = raw.get(key)
        if value is not None and str(value).strip() != "":
            return key, value
    return None, None


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    return _first_key(raw, keys)[1]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_bool(value: Any) -> bool:
    """
    Interpret a stored flag.

    Stored documents carry booleans, 0/1 integers or strings depending on who
    wrote them; "0", "" and "false" are all not-discarded.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def synthesize_id(index: int) -> str:
    """Fallback identity for a row that arrived without one."""
    return f"record_{uuid4().hex[:12]}_{index}"


class DiscardRecord(BaseModel):
    """
    A single record of material that may be discarded.

    Core attributes are typed; everything else a store document carries is
    kept in ``extra`` and written back untouched.

    Attributes:
        id: Stable identity within a scope (``post_id`` resolves to it)
        barcode: Printed barcode, trimmed; may be empty for malformed input
        field: Field (plot location) the material belongs to
        range: Range coordinate
        row: Row coordinate
        plot_id: Plot identifier
        subplot_id: Subplot identifier
        material_id: Material identifier (MATID)
        is_discarded: Whether the material has been discarded
        discarded_at: When it was discarded
        discarded_by: Actor who discarded it
        extra: Unknown document attributes (crop, owner, extno, ...)
        source_keys: Document key each core attribute was read from, so
            writes keep the document's own naming
    """

    id: str = Field(..., min_length=1)
    barcode: str = ""
    field: str = ""
    range: str = ""
    row: str = ""
    plot_id: str = ""
    subplot_id: str = ""
    material_id: str = ""
    is_discarded: bool = False
    discarded_at: str | None = None
    discarded_by: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
    source_keys: dict[str, str] = Field(default_factory=dict, exclude=True)

    @property
    def post_id(self) -> str:
        return self.id

    @property
    def status(self) -> str:
        return STATUS_DISCARDED if self.is_discarded else STATUS_PENDING

    @property
    def normalized_barcode(self) -> str:
        return normalize_barcode(self.barcode)

    @classmethod
    def from_raw(cls, raw: Any, index: int = 0) -> "DiscardRecord":
        """
        Normalize a raw store document (or an existing record) into a DiscardRecord.

        Display fields are coerced to trimmed strings, identity comes from the
        first of ``id``/``record_id``/``post_id`` and is synthesized only when
        all are missing. A value that is not a mapping still yields a row,
        flagged in ``extra["_error"]``.

        Args:
            raw: Store document, row mapping or DiscardRecord
            index: Position in the incoming batch (used for fallback ids)

        Returns:
            Normalized DiscardRecord
        """
        if isinstance(raw, DiscardRecord):
            return raw.model_copy(deep=True)

        if not isinstance(raw, Mapping):
            return cls(
                id=f"error_{index}",
                extra={"_error": f"Unsupported record type: {type(raw).__name__}"},
            )

        record_id = _first(raw, ID_KEYS)
        values = {}
        source_keys = {}
        for attr, keys in DOCUMENT_KEYS.items():
            key, values[attr] = _first_key(raw, keys)
            if key is not None:
                source_keys[attr] = key

        discarded_at = values["discarded_at"]
        discarded_by = values["discarded_by"]
        return cls(
            id=_as_text(record_id) if record_id is not None else synthesize_id(index),
            barcode=_as_text(values["barcode"]),
            field=_as_text(values["field"]),
            range=_as_text(values["range"]),
            row=_as_text(values["row"]),
            plot_id=_as_text(values["plot_id"]),
            subplot_id=_as_text(values["subplot_id"]),
            material_id=_as_text(values["material_id"]),
            is_discarded=as_bool(values["is_discarded"]),
            discarded_at=_as_text(discarded_at) if discarded_at is not None else None,
            discarded_by=_as_text(discarded_by) if discarded_by is not None else None,
            extra={k: v for k, v in raw.items() if k not in KNOWN_KEYS},
            source_keys=source_keys,
        )

    def mark_discarded(self, actor: str, when: datetime) -> "DiscardRecord":
        """Return a discarded copy stamped with actor and time."""
        return self.model_copy(
            update={
                "is_discarded": True,
                "discarded_at": when.strftime("%Y-%m-%d %H:%M:%S"),
                "discarded_by": str(actor),
            },
            deep=True,
        )

    def unmarked(self) -> "DiscardRecord":
        """Return a copy with the discard flag and its stamps cleared."""
        return self.model_copy(
            update={"is_discarded": False, "discarded_at": None, "discarded_by": None},
            deep=True,
        )

    def with_status(self, status: str) -> "DiscardRecord":
        """Return a copy whose discard flag matches a display status."""
        return self.model_copy(update={"is_discarded": status == STATUS_DISCARDED})

    def to_document(self) -> dict[str, Any]:
        """
        Serialize back to the store's document shape.

        Unknown attributes from ``extra`` are merged in first so a core key
        always wins. Each core attribute goes back under the key it was read
        from (canonical key otherwise). Discard stamps are only written while
        discarded; a flag the document already carried is kept, as false.
        """
        document = dict(self.extra)
        document.pop("_error", None)
        for attr in ("barcode", "field", "range", "row", "plot_id", "subplot_id", "material_id"):
            document[self._document_key(attr)] = getattr(self, attr)
        if self.is_discarded:
            document[self._document_key("is_discarded")] = True
            document[self._document_key("discarded_at")] = self.discarded_at
            document[self._document_key("discarded_by")] = self.discarded_by
        elif "is_discarded" in self.source_keys:
            document[self.source_keys["is_discarded"]] = False
        return document

    def _document_key(self, attr: str) -> str:
        return self.source_keys.get(attr, DOCUMENT_KEYS[attr][0])

    def to_payload(self) -> dict[str, Any]:
        """Store document plus identity and derived status, as sent to clients."""
        return {**self.to_document(), "id": self.id, "post_id": self.id, "status": self.status}

    def to_row(self) -> dict[str, Any]:
        """Flat row for the table, including hidden lookup keys."""
        return {
            "id": self.id,
            "post_id": self.id,
            "barcode": self.barcode,
            "status": self.status,
            "field": self.field,
            "range": self.range,
            "row": self.row,
            "plot_id": self.plot_id,
            "subplot_id": self.subplot_id,
            "material_id": self.material_id,
            "is_discarded": self.is_discarded,
            "discarded_at": self.discarded_at,
            "discarded_by": self.discarded_by,
        }

    class Config:
        json_schema_extra = {
            "example": {
                "id": "7",
                "barcode": "AB-100",
                "field": "AB-RA",
                "range": "3",
                "row": "12",
                "plot_id": "P-0042",
                "subplot_id": "1",
                "material_id": "MAT-88",
                "is_discarded": False,
                "extra": {"crop": "SOY", "owner": "breeding"},
            }
        }
