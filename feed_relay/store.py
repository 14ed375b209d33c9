"""
SQLite-backed durable state for deduplication.

One state database holds both key spaces used by the dedup policies:
- seen_entries: one row per delivered entry key (ledger policy)
- cursors: named timestamps (cursor policy)

Every sqlite3 failure is re-raised as LedgerError so callers can apply the
runtime degradation rules without knowing about the storage engine.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
import sqlite3

from .errors import LedgerError


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS seen_entries (
    entry_key TEXT PRIMARY KEY,
    seen_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS cursors (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise LedgerError(f"Cannot open state database {self._path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            raise LedgerError(f"State database error in {self._path}: {exc}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the database file and schema.

        Raises:
            LedgerError: If the file cannot be created or written
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LedgerError(f"Cannot create state directory for {self._path}: {exc}") from exc
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)


class SeenStore:
    """Durable set of entry keys that have already been delivered."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def seen(self, key: str) -> bool:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM seen_entries WHERE entry_key = ?",
                (key,),
            ).fetchone()
        return row is not None

    def mark_seen(self, key: str) -> None:
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO seen_entries (entry_key, seen_at)
                VALUES (?, ?)
                """,
                (key, utc_now_iso()),
            )

    def count(self) -> int:
        with self._db.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM seen_entries").fetchone()
        return int(row["total"])


class CursorStore:
    """Durable named timestamps."""

    def __init__(self, db: Database, name: str = "last_cycle_started") -> None:
        self._db = db
        self._name = name

    def get(self) -> datetime | None:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT value FROM cursors WHERE name = ?",
                (self._name,),
            ).fetchone()
        if row is None:
            return None
        try:
            return datetime.fromisoformat(str(row["value"]))
        except ValueError as exc:
            raise LedgerError(f"Corrupt cursor value: {row['value']!r}") from exc

    def set(self, value: datetime) -> None:
        with self._db.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cursors (name, value) VALUES (?, ?)",
                (self._name, value.astimezone(timezone.utc).isoformat()),
            )
