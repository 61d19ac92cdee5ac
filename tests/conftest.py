"""Shared fixtures for the test suite."""

import sqlite3

import pytest
from fastapi.testclient import TestClient

from coverage_api import data_access
from coverage_api.config import ServiceConfig
from coverage_api.data_access import CoverageStore
from coverage_api.main import create_app

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS code_coverage (
    timestamp_ms      INTEGER NOT NULL,
    statement_percent REAL NOT NULL
);
"""


@pytest.fixture
def service_config():
    return ServiceConfig(
        secret_phrase="s3cr3t",
        turso_db_url="libsql://coverage-test.turso.io",
        turso_auth_token="test-token-123",
    )


@pytest.fixture
def tmp_db(tmp_path, monkeypatch):
    """
    Real SQLite DB in tmp_path standing in for the remote database.

    libsql.connect is patched to open this file instead; the calls it
    receives are recorded on ``tmp_db.connects``.
    """
    db_path = str(tmp_path / "coverage.db")
    with sqlite3.connect(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
    conn.close()

    class _Db:
        def __init__(self):
            self.path = db_path
            self.connects = []

        def rows(self):
            conn = sqlite3.connect(db_path)
            conn.row_factory = sqlite3.Row
            try:
                return [dict(r) for r in conn.execute("SELECT * FROM code_coverage")]
            finally:
                conn.close()

    db = _Db()

    def _connect(database, auth_token=None):
        db.connects.append((database, auth_token))
        return sqlite3.connect(db_path)

    monkeypatch.setattr(data_access.libsql, "connect", _connect)
    return db


@pytest.fixture
def unreachable_db(monkeypatch):
    """Make every libsql.connect call fail like a DNS/TLS error would."""
    def _connect(database, auth_token=None):
        raise ConnectionError(f"could not resolve {database}")

    monkeypatch.setattr(data_access.libsql, "connect", _connect)


@pytest.fixture
def store(service_config):
    return CoverageStore(service_config)


@pytest.fixture
def client(service_config):
    """TestClient for an app built with the test config."""
    with TestClient(create_app(service_config)) as c:
        yield c
