"""
Pytest configuration and fixtures for orion-discard tests

This module provides shared fixtures for unit and integration tests.
"""
from typing import Generator

import pytest
from testcontainers.postgres import PostgresContainer

from orion_discard.config import Settings
from orion_discard.core.models import ScopeCriteria
from orion_discard.options import StaticOptionsSource
from orion_discard.service import DiscardService
from orion_discard.store import InMemoryEntryLog, InMemoryRecordStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# DOMAIN FIXTURES
# =======================

SAMPLE_RECORDS = [
    {"barcd": "AB-100", "field": "AB-RA", "range_val": "1", "row_val": "1", "plot_id": "P-1", "subplot_id": "1", "matid": "M-1", "crop": "SOY"},
    {"barcd": "AB-101", "field": "AB-RA", "range_val": "1", "row_val": "2", "plot_id": "P-2", "subplot_id": "1", "matid": "M-2"},
    {"barcd": "AB-102", "field": "AB-RA", "range_val": "1", "row_val": "3", "plot_id": "P-3", "subplot_id": "1", "matid": "M-3",
     "isDiscarded": True, "discarded_at": "2024-05-01 09:30:00", "discarded_by": "7"},
    {"barcd": "CD-200", "field": "CD-RB", "range_val": "2", "row_val": "1", "plot_id": "P-4", "subplot_id": "2", "matid": "M-4"},
]

SAMPLE_OPTIONS = [
    {"id": "1", "title": "Farm A", "field_type": "farm"},
    {"id": "2", "title": "Farm B", "field_type": "farm"},
    {"id": "10", "title": "North", "field_type": "sections", "farm_name": "1"},
    {"id": "11", "title": "South", "field_type": "sections", "farm_name": "1"},
    {"id": "20", "title": "Only", "field_type": "sections", "farm_name": "2"},
    {"id": "100", "title": "AB-RA", "field_type": "fields", "farm_name": "1", "section_name": "10"},
    {"id": "101", "title": "CD-RB", "field_type": "fields", "farm_name": "1", "section_name": "10"},
    {"id": "102", "title": "EF-RC", "field_type": "fields", "farm_name": "2", "section_name": "20"},
]


@pytest.fixture
def scope() -> ScopeCriteria:
    """Scope shared by the sample records"""
    return ScopeCriteria(site="PRSA", year="2024", record_type="T1")


@pytest.fixture
def settings() -> Settings:
    return Settings(default_site="PRSA", default_year="2024", record_type="T1", fetch_retry_delay=0)


@pytest.fixture
def record_store(scope) -> InMemoryRecordStore:
    """
    In-memory store seeded with four records (ids 1-4); AB-102 is already discarded

    Returns:
        InMemoryRecordStore
    """
    store = InMemoryRecordStore()
    for document in SAMPLE_RECORDS:
        store.add(scope, document)
    return store


@pytest.fixture
def entry_log() -> InMemoryEntryLog:
    return InMemoryEntryLog()


@pytest.fixture
def service(record_store, entry_log, settings) -> DiscardService:
    return DiscardService(record_store, entry_log, settings=settings)


@pytest.fixture
def sample_options() -> list[dict]:
    """Two farms; farm 1 has sections 10 (two fields) and 11 (none); farm 2 has one of each"""
    return [dict(option) for option in SAMPLE_OPTIONS]


@pytest.fixture
def options_source() -> StaticOptionsSource:
    return StaticOptionsSource({"PRSA": SAMPLE_OPTIONS})


class RecordingListener:
    """Collects everything the flows report"""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []
        self.loading: list[bool] = []
        self.busy: list[bool] = []
        self.conflicts: list[tuple[str, dict]] = []

    def on_message(self, text: str, level: str) -> None:
        self.messages.append((text, level))

    def on_loading(self, loading: bool) -> None:
        self.loading.append(loading)

    def on_busy(self, busy: bool) -> None:
        self.busy.append(busy)

    def on_conflict(self, barcode: str, details: dict) -> None:
        self.conflicts.append((barcode, details))

    def last_message(self) -> tuple[str, str] | None:
        return self.messages[-1] if self.messages else None


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_orion",
        password="test_password",
        dbname="test_orion",
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="function")
def db_pool(postgres_container):
    """
    Open connection pool on the test container with a fresh schema

    Yields:
        DatabaseConnectionPool
    """
    from orion_discard.store import DatabaseConnectionPool, SchemaManager

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_orion",
        user="test_orion",
        password="test_password",
    )
    pool.open()
    SchemaManager(pool).ensure_schema()

    with pool.get_cursor() as cur:
        cur.execute("TRUNCATE TABLE discard_entry, discard_record RESTART IDENTITY")

    yield pool
    pool.close()

