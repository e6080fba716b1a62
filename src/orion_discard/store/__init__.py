"""
Record store and discard entry log adapters.

In-memory implementations back tests and local runs; the PostgreSQL ones
back the deployed station.
"""

from .connection import DatabaseConnectionPool
from .entry_log import DiscardEntryLog, InMemoryEntryLog, PostgresEntryLog
from .postgres_store import PostgresRecordStore
from .record_store import InMemoryRecordStore, RecordStore
from .schema_mgmt import SchemaManager

__all__ = [
    "DatabaseConnectionPool",
    "SchemaManager",
    "RecordStore",
    "InMemoryRecordStore",
    "PostgresRecordStore",
    "DiscardEntryLog",
    "InMemoryEntryLog",
    "PostgresEntryLog",
]
