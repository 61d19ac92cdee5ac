"""
Data access layer for the remote coverage database.
Write-only access to a Turso (libSQL) database through its sqlite3-style driver.
"""

import logging
import threading

import libsql

from .config import ServiceConfig, settings
from .models import CoverageRecord

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a coverage record could not be written."""


class CoverageStore:
    """
    Writes coverage records to the remote database.

    Every call opens its own connection and closes it before returning,
    so concurrent requests never share connection or transaction state.
    """

    def __init__(self, config: ServiceConfig, table: str = None):
        """
        Args:
            config: Service configuration holding the database URL and token
            table: Target table (defaults to config setting)
        """
        self.db_url = config.turso_db_url
        self._auth_token = config.turso_auth_token
        self.table = table or settings.COVERAGE_TABLE

    def connect(self):
        """Open a new connection to the remote database."""
        return libsql.connect(self.db_url, auth_token=self._auth_token)

    def insert(self, record: CoverageRecord, abandoned: threading.Event = None) -> None:
        """
        Insert a single coverage row.

        Args:
            record: Row to write
            abandoned: Set by the caller once it has stopped waiting; the
                row is rolled back instead of committed

        Raises:
            PersistenceError: on connection failure, a failed insert, or
                when the caller abandoned the write
        """
        abandoned = abandoned or threading.Event()
        try:
            conn = self.connect()
        except Exception as e:
            raise PersistenceError(f"Failed to connect to {self.db_url}: {e}") from e

        try:
            if abandoned.is_set():
                raise PersistenceError("Insert abandoned before execute")
            conn.execute(
                f"INSERT INTO {self.table} VALUES (?, ?)",
                record.as_params()
            )
            if abandoned.is_set():
                conn.rollback()
                raise PersistenceError("Insert abandoned before commit, rolled back")
            conn.commit()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Insert into {self.table} failed: {e}") from e
        finally:
            conn.close()

        logger.debug(f"Stored coverage {record.statement_percent} at {record.timestamp_ms}")
