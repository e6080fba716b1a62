"""
Unit tests for connection pool configuration (no database needed)
"""
import pytest

from orion_discard.store import DatabaseConnectionPool


def test_password_required(monkeypatch):
    monkeypatch.delenv("DB_PASSWORD", raising=False)
    with pytest.raises(ValueError, match="password"):
        DatabaseConnectionPool(host="db.test")


def test_conninfo_from_environment(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.test")
    monkeypatch.setenv("DB_PORT", "6543")
    monkeypatch.setenv("DB_PASSWORD", "secret")

    pool = DatabaseConnectionPool(database="orion_test")

    assert "host=db.test" in pool.conninfo
    assert "port=6543" in pool.conninfo
    assert "dbname=orion_test" in pool.conninfo
    assert not pool.is_open


def test_closed_pool_refuses_connections():
    pool = DatabaseConnectionPool(password="secret")
    with pytest.raises(RuntimeError, match="not open"):
        with pool.get_connection():
            pass
