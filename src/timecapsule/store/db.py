"""
SQLite storage for TimeCapsule.

This module provides the durable key to record mapping behind CapsuleStore.
All capsules live in a single SQLite database file.

Design Principles:
    - Keyed: one row per capsule, primary key is the capsule id
    - Ordered: listing iterates in ascending key order
    - Insert-only for new keys: inserting an existing id is an error
    - One mutation: the opened flag, applied conditionally so it can only
      flip once even across connections
    - Timestamps are unsigned 64-bit nanoseconds; SQLite integers are
      signed, so they are stored shifted down by 2**63

Tables:
    - schema_version: Migration tracking
    - capsules: One row per capsule
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Generator

from timecapsule.errors import StorageConnectionError, StorageReadError, StorageWriteError
from timecapsule.schema import Capsule

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

# Maps [0, 2**64) onto SQLite's signed INTEGER range
TIMESTAMP_OFFSET = 2**63

CREATE_TABLES_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Capsules table: keyed by capsule id
CREATE TABLE IF NOT EXISTS capsules (
    capsule_id TEXT PRIMARY KEY,
    creator TEXT NOT NULL,
    contents_json TEXT NOT NULL,
    open_date INTEGER NOT NULL,
    is_opened INTEGER NOT NULL DEFAULT 0,
    created_date INTEGER NOT NULL
);
"""


def now_iso() -> str:
    """Get current UTC time in ISO format."""
    return datetime.now(UTC).isoformat()


def _to_column(ns: int) -> int:
    return ns - TIMESTAMP_OFFSET


def _from_column(value: int) -> int:
    return value + TIMESTAMP_OFFSET


def _row_to_capsule(row: sqlite3.Row) -> Capsule:
    return Capsule(
        id=row["capsule_id"],
        creator=row["creator"],
        contents=json.loads(row["contents_json"]),
        open_date=_from_column(row["open_date"]),
        is_opened=bool(row["is_opened"]),
        created_date=_from_column(row["created_date"]),
    )


class CapsuleDB:
    """
    SQLite database for capsule records.

    Usage:
        db = CapsuleDB("timecapsule.db")
        db.insert(capsule)
        db.get(capsule.id)
        db.close()

    Or use as context manager:
        with CapsuleDB("timecapsule.db") as db:
            ...
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
                     Will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._connect()
        self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            raise StorageConnectionError(
                db_path=str(self.db_path),
                operation="connect",
                message=f"Failed to connect to database: {e}",
            ) from e

    def _init_schema(self) -> None:
        """Initialize database schema if needed."""
        try:
            cursor = self._conn.executescript(CREATE_TABLES_SQL)
            cursor.close()

            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_iso()),
                )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="init_schema",
                underlying_error=str(e),
            ) from e

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Context manager for database transactions."""
        try:
            yield
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "CapsuleDB":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    # =========================================================================
    # Capsule Operations
    # =========================================================================

    def insert(self, capsule: Capsule) -> None:
        """
        Store a new capsule.

        Args:
            capsule: The capsule to store

        Raises:
            StorageWriteError: If the id is already taken or the write fails
        """
        try:
            with self.transaction():
                self._conn.execute(
                    """
                    INSERT INTO capsules (
                        capsule_id, creator, contents_json,
                        open_date, is_opened, created_date
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        capsule.id,
                        capsule.creator,
                        json.dumps(capsule.contents),
                        _to_column(capsule.open_date),
                        int(capsule.is_opened),
                        _to_column(capsule.created_date),
                    ),
                )
        except (sqlite3.Error, OverflowError) as e:
            raise StorageWriteError(
                operation="insert",
                underlying_error=str(e),
            ) from e

    def get(self, capsule_id: str) -> Capsule | None:
        """
        Get a capsule by id.

        Args:
            capsule_id: The id to look up

        Returns:
            Capsule or None if not found
        """
        try:
            cursor = self._conn.execute(
                "SELECT * FROM capsules WHERE capsule_id = ?",
                (capsule_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_capsule(row)
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="get",
                underlying_error=str(e),
            ) from e

    def contains(self, capsule_id: str) -> bool:
        """Whether a capsule with this id exists."""
        try:
            cursor = self._conn.execute(
                "SELECT 1 FROM capsules WHERE capsule_id = ?",
                (capsule_id,),
            )
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="contains",
                underlying_error=str(e),
            ) from e

    def list_all(self) -> list[Capsule]:
        """
        List every capsule.

        Returns:
            All capsules in ascending id order
        """
        try:
            cursor = self._conn.execute(
                "SELECT * FROM capsules ORDER BY capsule_id"
            )
            return [_row_to_capsule(row) for row in cursor]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="list_all",
                underlying_error=str(e),
            ) from e

    def count(self) -> int:
        """Number of stored capsules."""
        try:
            cursor = self._conn.execute("SELECT COUNT(*) FROM capsules")
            return cursor.fetchone()[0]
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="count",
                underlying_error=str(e),
            ) from e

    def mark_opened(self, capsule_id: str) -> bool:
        """
        Flip the opened flag if it is still unset.

        Args:
            capsule_id: The capsule to mark

        Returns:
            True if this call opened the capsule, False if it was missing or
            already opened
        """
        try:
            with self.transaction():
                cursor = self._conn.execute(
                    "UPDATE capsules SET is_opened = 1 WHERE capsule_id = ? AND is_opened = 0",
                    (capsule_id,),
                )
            return cursor.rowcount == 1
        except sqlite3.Error as e:
            raise StorageWriteError(
                operation="mark_opened",
                underlying_error=str(e),
            ) from e

    def get_schema_version(self) -> int | None:
        """Latest applied schema version."""
        try:
            cursor = self._conn.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
            row = cursor.fetchone()
            return row["version"] if row else None
        except sqlite3.Error as e:
            raise StorageReadError(
                operation="get_schema_version",
                underlying_error=str(e),
            ) from e
