"""Shared SQLite connections."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock

# Files SQLite keeps next to a database in WAL mode.
_SIDECAR_SUFFIXES = ("-wal", "-shm")


class SQLiteManager:
    """Hand out one thread-shareable connection per database file.

    Callers pass the DDL they rely on; it is idempotent and runs on every
    ``connect`` so a store can be reopened after :meth:`reset`.
    """

    def __init__(self) -> None:
        self._connections: dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path, schema: str | None = None) -> sqlite3.Connection:
        key = path.resolve()
        with self._lock:
            conn = self._connections.get(key)
            if conn is None:
                key.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(key, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                self._connections[key] = conn
            if schema:
                conn.executescript(schema)
            return conn

    def reset(self, path: Path) -> None:
        """Close the connection to ``path`` and delete the database files."""

        key = path.resolve()
        with self._lock:
            conn = self._connections.pop(key, None)
            if conn is not None:
                conn.close()
        for candidate in (key, *(key.with_name(key.name + suffix) for suffix in _SIDECAR_SUFFIXES)):
            candidate.unlink(missing_ok=True)

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


__all__ = ["SQLiteManager"]
