"""
Unit tests for Pydantic data models.

Tests record normalization, scope construction, options and result models.
"""

from datetime import datetime

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError as PydanticValidationError

from orion_discard.core.errors import ValidationError
from orion_discard.core.models import (
    STATUS_DISCARDED,
    STATUS_PENDING,
    DiscardEntry,
    DiscardRecord,
    DiscardStatistics,
    FieldOption,
    ScopeCriteria,
)
from orion_discard.core.models.discard_record import as_bool


class TestDiscardRecordFromRaw:
    """Tests for DiscardRecord.from_raw normalization"""

    def test_store_document_keys(self):
        """Test stored key names map onto core attributes"""
        record = DiscardRecord.from_raw(
            {
                "post_id": 7,
                "barcd": " AB-100 ",
                "field": "AB-RA",
                "range_val": 3,
                "row_val": "12",
                "plot_id": "P-1",
                "subplot_id": 1,
                "matid": "M-9",
                "crop": "SOY",
            }
        )
        assert record.id == "7"
        assert record.post_id == "7"
        assert record.barcode == "AB-100"
        assert record.range == "3"
        assert record.row == "12"
        assert record.subplot_id == "1"
        assert record.material_id == "M-9"
        assert record.extra == {"crop": "SOY"}
        assert record.status == STATUS_PENDING

    def test_first_id_key_wins(self):
        """Test id is preferred over record_id and post_id"""
        record = DiscardRecord.from_raw({"id": "a", "record_id": "b", "post_id": "c"})
        assert record.id == "a"

    def test_missing_id_is_synthesized(self):
        """Test a record without any id still gets a unique one"""
        first = DiscardRecord.from_raw({"barcd": "X-1"}, index=4)
        second = DiscardRecord.from_raw({"barcd": "X-1"}, index=4)
        assert first.id.startswith("record_")
        assert first.id.endswith("_4")
        assert first.id != second.id

    def test_non_mapping_becomes_flagged_row(self):
        """Test malformed input is kept as a flagged row instead of dropped"""
        record = DiscardRecord.from_raw("garbage", index=2)
        assert record.id == "error_2"
        assert "_error" in record.extra

    def test_discard_flag_variants(self):
        """Test stored discard flags of any shape are interpreted"""
        assert DiscardRecord.from_raw({"id": 1, "isDiscarded": True}).is_discarded
        assert DiscardRecord.from_raw({"id": 1, "isDiscarded": "1"}).is_discarded
        assert DiscardRecord.from_raw({"id": 1, "is_discarded": 1}).is_discarded
        assert not DiscardRecord.from_raw({"id": 1, "isDiscarded": "0"}).is_discarded
        assert not DiscardRecord.from_raw({"id": 1}).is_discarded

    def test_copy_of_existing_record(self):
        """Test passing a DiscardRecord returns an independent copy"""
        original = DiscardRecord(id="1", barcode="A", extra={"crop": "SOY"})
        copy = DiscardRecord.from_raw(original)
        copy.extra["crop"] = "CORN"
        assert original.extra["crop"] == "SOY"

    @pytest.mark.parametrize("value,expected", [
        (None, False), ("", False), ("false", False), ("no", False), (0, False),
        ("true", True), ("YES", True), (2, True), (True, True),
    ])
    def test_as_bool(self, value, expected):
        assert as_bool(value) is expected


class TestDiscardRecordTransitions:
    """Tests for discard mark/unmark and serialization"""

    def test_mark_discarded_stamps(self):
        """Test marking sets flag, time and actor and leaves the source record unchanged"""
        record = DiscardRecord(id="1", barcode="AB-100")
        marked = record.mark_discarded("42", datetime(2024, 5, 1, 9, 30, 0))

        assert marked.is_discarded
        assert marked.discarded_at == "2024-05-01 09:30:00"
        assert marked.discarded_by == "42"
        assert not record.is_discarded

    def test_unmarked_clears_stamps(self):
        record = DiscardRecord(id="1", is_discarded=True, discarded_at="x", discarded_by="y")
        cleared = record.unmarked()
        assert not cleared.is_discarded
        assert cleared.discarded_at is None
        assert cleared.discarded_by is None

    def test_to_document_keeps_unknown_attributes(self):
        """Test unknown attributes survive a round through the model"""
        raw = {"id": "9", "barcd": "AB-1", "field": "F", "crop": "SOY", "owner": "lab"}
        document = DiscardRecord.from_raw(raw).to_document()
        assert document["crop"] == "SOY"
        assert document["owner"] == "lab"
        assert document["barcd"] == "AB-1"
        assert "id" not in document
        assert "isDiscarded" not in document

    def test_to_document_writes_discard_keys_when_discarded(self):
        record = DiscardRecord(id="1").mark_discarded("0", datetime(2024, 1, 2, 3, 4, 5))
        document = record.to_document()
        assert document["isDiscarded"] is True
        assert document["discarded_at"] == "2024-01-02 03:04:05"
        assert document["discarded_by"] == "0"

    def test_to_document_keeps_alias_keys(self):
        """Test a discard writes back under the keys the document already used"""
        raw = {"id": "3", "barcode": "AB-3", "range": "2", "row": "5", "plotId": "P-3",
               "subplotId": "1", "materialId": "M-3", "is_discarded": 0, "crop": "SOY"}
        record = DiscardRecord.from_raw(raw).mark_discarded("7", datetime(2024, 5, 1, 9, 30))

        document = record.to_document()

        assert document == {
            "barcode": "AB-3", "field": "", "range": "2", "row": "5", "plotId": "P-3",
            "subplotId": "1", "materialId": "M-3", "is_discarded": True,
            "discarded_at": "2024-05-01 09:30:00", "discarded_by": "7", "crop": "SOY",
        }
        assert DiscardRecord.from_raw({"id": "3", **document}).to_document() == document

    def test_to_document_keeps_explicit_pending_flag(self):
        document = DiscardRecord.from_raw({"id": "1", "barcd": "AB-1", "isDiscarded": False}).to_document()
        assert document["isDiscarded"] is False

    def test_unmarked_document_keeps_flag_drops_stamps(self):
        raw = {"id": "1", "barcd": "AB-1", "isDiscarded": True, "discardedAt": "x", "discardedBy": "y"}
        document = DiscardRecord.from_raw(raw).unmarked().to_document()
        assert document["isDiscarded"] is False
        assert "discardedAt" not in document
        assert "discardedBy" not in document

    def test_to_row_contains_hidden_keys(self):
        row = DiscardRecord(id="5", barcode="AB-5", is_discarded=True).to_row()
        assert row["id"] == "5"
        assert row["post_id"] == "5"
        assert row["barcode"] == "AB-5"
        assert row["status"] == STATUS_DISCARDED

    def test_with_status(self):
        record = DiscardRecord(id="1")
        assert record.with_status(STATUS_DISCARDED).is_discarded
        assert not record.with_status(STATUS_PENDING).is_discarded

    @given(
        st.text(alphabet="ABCdef0123-_.", min_size=1, max_size=20),
        st.text(alphabet=" \t", max_size=3),
    )
    def test_property_barcode_is_trimmed(self, barcode, padding):
        """Property test: surrounding whitespace never survives normalization"""
        record = DiscardRecord.from_raw({"id": "1", "barcd": padding + barcode + padding})
        assert record.barcode == barcode
        assert record.normalized_barcode == barcode.upper()


class TestScopeCriteria:
    """Tests for ScopeCriteria"""

    def test_build_coerces_values(self):
        scope = ScopeCriteria.build(" PRSA ", 2024, "T1")
        assert scope.key() == ("PRSA", "2024", "T1")

    def test_build_reports_every_missing_part(self):
        """Test all missing parts are reported together"""
        with pytest.raises(ValidationError) as exc_info:
            ScopeCriteria.build("", None, " ")
        assert exc_info.value.problems == ["site", "year", "record_type"]
        assert "Missing required parameters" in exc_info.value.message

    def test_scope_is_frozen(self):
        scope = ScopeCriteria(site="PRSA", year="2024", record_type="T1")
        with pytest.raises(PydanticValidationError):
            scope.site = "OTHER"


class TestFieldOption:
    """Tests for FieldOption"""

    def test_from_raw_source_shape(self):
        option = FieldOption.from_raw(
            {"id": 100, "title": "AB-RA", "field_type": "fields", "farm_name": "1", "section_name": "10"}
        )
        assert option.id == "100"
        assert option.farm == "1"
        assert option.section == "10"
        assert option.value == "AB-RA"

    def test_farm_value_is_id(self):
        option = FieldOption.from_raw({"id": "1", "title": "Farm A", "field_type": "farm"})
        assert option.value == "1"

    def test_unknown_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            FieldOption.from_raw({"id": "1", "title": "X", "field_type": "plots"})


class TestDiscardEntry:
    """Tests for DiscardEntry"""

    def test_valid_entry(self):
        entry = DiscardEntry(farm_id="1", section_id="10", field_id="AB-RA", scanned_code="AB-100")
        assert entry.is_discarded is True
        assert entry.entry_id is None
        assert isinstance(entry.created_at, datetime)

    def test_empty_scanned_code_rejected(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            DiscardEntry(farm_id="1", section_id="10", field_id="AB-RA", scanned_code="")
        assert "scanned_code" in str(exc_info.value)


class TestDiscardStatistics:
    """Tests for DiscardStatistics"""

    def test_from_counts(self):
        stats = DiscardStatistics.from_counts(3, 1)
        assert stats.pending == 2
        assert stats.percentage == 33

    def test_empty_scope(self):
        stats = DiscardStatistics.from_counts(0, 0)
        assert stats.percentage == 0

    @given(st.integers(min_value=0, max_value=10000), st.integers(min_value=0, max_value=10000))
    def test_property_counts_add_up(self, a, b):
        """Property test: discarded + pending always equals total"""
        total, discarded = max(a, b), min(a, b)
        stats = DiscardStatistics.from_counts(total, discarded)
        assert stats.discarded + stats.pending == stats.total
        assert 0 <= stats.percentage <= 100
