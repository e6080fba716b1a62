"""
Unit tests for DiscardService operations and response envelopes.
"""

import pytest

from orion_discard.core.errors import PersistenceError
from orion_discard.service import DiscardService
from orion_discard.store import InMemoryEntryLog, InMemoryRecordStore

SCOPE = {"site": "PRSA", "year": "2024", "record_type": "T1"}

SUBMISSION = {
    "farm_id": "1",
    "farm_name": "Farm A",
    "section_id": "10",
    "section_name": "North",
    "field_id": "AB-RA",
    "field_name": "AB-RA",
    "scanned_code": "AB-100",
    **SCOPE,
}


class QueryCountingStore(InMemoryRecordStore):
    """In-memory store that counts queries"""

    def __init__(self):
        super().__init__()
        self.queries = 0

    def query(self, scope, field=None):
        self.queries += 1
        return super().query(scope, field)


class RestoreRejectingStore(InMemoryRecordStore):
    """In-memory store that accepts discards but rejects writes back to pending"""

    def update(self, scope, record, expected_discarded=None):
        if expected_discarded:
            raise PersistenceError("restore rejected")
        return super().update(scope, record, expected_discarded)


class FailingEntryLog(InMemoryEntryLog):
    def insert(self, entry):
        raise PersistenceError("entry write failed")


class TestEnvelopes:

    def test_success_envelope(self, service):
        response = service.handle("statistics", SCOPE)
        assert response["success"] is True
        assert response["data"]["total"] == 4

    def test_failure_envelope(self, service):
        response = service.handle("validate_and_discard", {**SCOPE, "barcode": "ZZ-1"})
        assert response["success"] is False
        assert response["error"]["code"] == "not_found"
        assert response["error"]["message"] == "Barcode not found"

    def test_unknown_action(self, service):
        response = service.handle("drop_tables", {})
        assert response["error"]["code"] == "validation_error"

    def test_unexpected_error_is_wrapped(self, service, monkeypatch):
        """Test a crash inside a handler still answers with an envelope"""
        def explode(scope, field=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(service.store, "query", explode)
        response = service.handle("statistics", SCOPE)
        assert response["success"] is False
        assert response["error"]["message"] == "Could not complete the operation"


class TestFetchRecords:

    def test_records_of_field(self, service):
        data = service.handle("fetch_records", {**SCOPE, "field": "AB-RA"})["data"]
        assert [row["id"] for row in data] == ["1", "2", "3"]
        assert data[2]["status"] == "Discarded"
        assert data[0]["crop"] == "SOY"

    def test_missing_parameters(self, service):
        response = service.handle("fetch_records", {"site": "PRSA", "field": ""})
        assert response["error"]["code"] == "validation_error"
        assert response["error"]["details"]["problems"] == ["year", "record_type", "field"]

    def test_no_data(self, service):
        response = service.handle("fetch_records", {**SCOPE, "field": "NOPE"})
        assert response["error"]["code"] == "not_found"
        assert response["error"]["message"] == "No data found for the specified criteria"


class TestCheckDuplicate:

    def test_pending_barcode(self, service):
        data = service.handle("check_duplicate", {**SCOPE, "barcode": "ab-100"})["data"]
        assert data["exists"] and not data["discarded"]

    def test_discarded_barcode(self, service):
        data = service.handle("check_duplicate", {**SCOPE, "barcode": "AB-102"})["data"]
        assert data["discarded"]
        assert data["record"]["discarded_by"] == "7"

    def test_logged_entry_counts_as_discarded(self, service):
        """Test a code logged earlier but absent from the records is a duplicate"""
        service.submit_discard({**SUBMISSION, "scanned_code": "LOOSE-1"})
        data = service.handle("check_duplicate", {**SCOPE, "barcode": "loose-1"})["data"]
        assert data["exists"] and data["discarded"]

    def test_scope_defaults_from_settings(self, service):
        data = service.handle("check_duplicate", {"barcode": "AB-100", "record_type": "T1"})["data"]
        assert data["exists"]


class TestSubmitDiscard:

    def test_submit_marks_record_and_logs_entry(self, service, record_store, entry_log, scope):
        confirmation = service.submit_discard({**SUBMISSION, "actor": "42"})

        assert confirmation["message"] == "Discard recorded successfully"
        assert confirmation["record"]["id"] == "1"
        assert confirmation["record"]["isDiscarded"] is True
        assert record_store.get(scope, "1").discarded_by == "42"

        entry = entry_log.list_entries()[0]
        assert entry.barcode == "AB-100"
        assert entry.material_id == "M-1"
        assert entry.crop == "SOY"
        assert entry.site == "PRSA"

    def test_unknown_code_is_still_logged(self, service, entry_log):
        confirmation = service.submit_discard({**SUBMISSION, "scanned_code": "NEW-1"})
        assert confirmation["record"] is None
        assert entry_log.find_discarded("NEW-1") is not None

    def test_missing_inputs_rejected_before_store_access(self, entry_log, settings):
        """Test an empty section fails without touching the record store"""
        store = QueryCountingStore()
        service = DiscardService(store, entry_log, settings=settings)

        response = service.handle("submit_discard", {**SUBMISSION, "section_id": "", "field_id": ""})

        assert response["error"]["code"] == "validation_error"
        assert response["error"]["details"]["problems"] == ["section", "field"]
        assert store.queries == 0

    def test_discarded_record_conflicts(self, service):
        response = service.handle("submit_discard", {**SUBMISSION, "scanned_code": "AB-102"})
        assert response["error"]["code"] == "already_discarded"
        assert response["error"]["details"]["discarded_at"] == "2024-05-01 09:30:00"

    def test_second_submission_conflicts(self, service, entry_log):
        service.submit_discard(SUBMISSION)
        response = service.handle("submit_discard", SUBMISSION)
        assert response["error"]["code"] == "already_discarded"
        assert len(entry_log.list_entries()) == 1

    def test_failed_entry_write_restores_record(self, record_store, scope, settings):
        """Test the record is unmarked again when the entry cannot be written"""
        service = DiscardService(record_store, FailingEntryLog(), settings=settings)

        response = service.handle("submit_discard", SUBMISSION)

        assert response["error"]["code"] == "persistence_error"
        assert not record_store.get(scope, "1").is_discarded

    def test_failed_restore_reports_entry_error(self, scope, settings):
        """Test a restore that also fails is logged and the entry write error still reaches the caller"""
        store = RestoreRejectingStore()
        store.add(scope, {"id": 1, "barcd": "AB-100", "field": "AB-RA"})
        service = DiscardService(store, FailingEntryLog(), settings=settings)

        response = service.handle("submit_discard", SUBMISSION)

        assert response["error"]["code"] == "persistence_error"
        assert response["error"]["message"] == "entry write failed"
        assert store.get(scope, "1").is_discarded

    def test_site_and_year_default(self, record_store, entry_log, settings):
        service = DiscardService(record_store, entry_log, settings=settings)
        payload = {k: v for k, v in SUBMISSION.items() if k not in ("site", "year")}
        confirmation = service.submit_discard(payload)
        assert confirmation["entry"]["site"] == "PRSA"
        assert confirmation["entry"]["year"] == "2024"


class TestAdminOperations:

    def test_validate_and_unmark(self, service):
        marked = service.handle("validate_and_discard", {**SCOPE, "barcode": "AB-101", "actor": "9"})["data"]
        assert marked["discarded_by"] == "9"

        restored = service.handle("unmark_discard", {**SCOPE, "barcode": "AB-101"})["data"]
        assert restored["status"] == "Pending"

    def test_unmark_pending(self, service):
        response = service.handle("unmark_discard", {**SCOPE, "barcode": "AB-100"})
        assert response["error"]["code"] == "not_discarded"

    def test_bulk_validate(self, service):
        data = service.handle("bulk_validate", {**SCOPE, "barcodes": ["AB-100", "AB-102", "ZZ"]})["data"]
        assert data["succeeded"] == ["AB-100"]
        assert data["already_discarded"] == ["AB-102"]
        assert data["not_found"] == ["ZZ"]

    def test_bulk_validate_requires_list(self, service):
        response = service.handle("bulk_validate", {**SCOPE, "barcodes": "AB-100"})
        assert response["error"]["code"] == "validation_error"

    def test_statistics_requires_scope(self, service):
        response = service.handle("statistics", {"site": "PRSA"})
        assert response["error"]["details"]["problems"] == ["year", "record_type"]


@pytest.mark.parametrize("action", ["validate_and_discard", "unmark_discard"])
def test_persistence_error_reported(action, scope, settings):
    class ReadOnlyStore(InMemoryRecordStore):
        def update(self, scope, record, expected_discarded=None):
            raise PersistenceError("Invalid record ID")

    store = ReadOnlyStore()
    store.add(scope, {"barcd": "AB-1", "isDiscarded": action == "unmark_discard"})
    service = DiscardService(store, InMemoryEntryLog(), settings=settings)

    response = service.handle(action, {**SCOPE, "barcode": "AB-1"})

    assert response["error"]["code"] == "persistence_error"
