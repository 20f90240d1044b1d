"""SQLite storage for daily snapshots."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .models import PeriodSnapshot, SnapshotFormatError
from .store import SnapshotStoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"
SQLITE_SIDE_FILE_SUFFIXES = ("-journal", "-wal", "-shm")


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS daily_snapshots (
            date TEXT PRIMARY KEY,
            document TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )


def fetch_snapshot_document(conn: sqlite3.Connection, date: str) -> Optional[str]:
    row = conn.execute(
        "SELECT document FROM daily_snapshots WHERE date = ?",
        (date,),
    ).fetchone()
    return row["document"] if row else None


def upsert_snapshot_document(conn: sqlite3.Connection, date: str, document: str) -> None:
    conn.execute(
        """
        INSERT INTO daily_snapshots (date, document, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(date) DO UPDATE SET
            document = excluded.document,
            updated_at = excluded.updated_at
        """,
        (date, document, datetime.now().strftime(DATETIME_FMT)),
    )


class SqliteSnapshotStore:
    """Snapshot store keeping one JSON document per date in a SQLite table.

    A connection is opened per call so the store can be used from the worker
    threads the merger dispatches I/O to.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def local_paths(self) -> tuple[Path, ...]:
        return (self.db_path,) + tuple(
            self.db_path.with_name(self.db_path.name + suffix)
            for suffix in SQLITE_SIDE_FILE_SUFFIXES
        )

    def get(self, date: str) -> Optional[PeriodSnapshot]:
        try:
            with database_connection(self.db_path) as conn:
                document = fetch_snapshot_document(conn, date)
        except sqlite3.Error as exc:
            logger.warning("Unable to read snapshot %s from %s: %s", date, self.db_path, exc)
            return None
        if document is None:
            return None
        try:
            return PeriodSnapshot.from_dict(json.loads(document))
        except (json.JSONDecodeError, SnapshotFormatError) as exc:
            logger.warning("Ignoring unreadable snapshot %s in %s: %s", date, self.db_path, exc)
            return None

    def put(self, snapshot: PeriodSnapshot) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Failed to create database directory {self.db_path.parent}: {exc}"
            ) from exc
        document = json.dumps(snapshot.to_dict(), ensure_ascii=False)
        try:
            with database_connection(self.db_path) as conn:
                upsert_snapshot_document(conn, snapshot.date, document)
        except sqlite3.Error as exc:
            raise SnapshotStoreError(
                f"Failed to write snapshot {snapshot.date} to {self.db_path}: {exc}"
            ) from exc

