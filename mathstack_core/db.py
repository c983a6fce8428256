from __future__ import annotations

import os
import sqlite3
from datetime import datetime
from typing import Dict, Optional

DEFAULT_DB = os.path.join('data', 'mathstack.db')


def _ensure_db_dir(db_path: str) -> None:
    """Ensures the directory for the SQLite DB exists before connecting."""
    directory = os.path.dirname(db_path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def _resolve_db_path(db_path: str) -> str:
    """Resolves a potentially unwritable DB path to a writable one, creating the directory if needed."""
    try:
        _ensure_db_dir(db_path)
        return db_path
    except PermissionError:
        pass
    candidates = [
        os.getenv('MATHSTACK_DB_DIR'),
        os.path.join(os.getcwd(), 'data'),
        '/tmp',
    ]
    base = os.path.basename(db_path) or 'mathstack.db'
    for d in candidates:
        if not d:
            continue
        try:
            os.makedirs(d, exist_ok=True)
            return os.path.join(d, base)
        except OSError:
            continue
    # Last resort: current working directory
    return base


def _utc_now() -> str:
    return datetime.utcnow().isoformat(timespec='seconds') + 'Z'


def _ensure_db(conn: sqlite3.Connection) -> None:
    """Ensures the blob table exists."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS blobs (
            key TEXT PRIMARY KEY,
            data BLOB NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


class SqliteBlobStore:
    """Opaque key -> bytes store. One short-lived connection per call."""

    def __init__(self, db_path: str = DEFAULT_DB) -> None:
        self.db_path = _resolve_db_path(db_path)

    def put(self, key: str, blob: bytes) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            _ensure_db(conn)
            conn.execute(
                "INSERT OR REPLACE INTO blobs (key, data, updated_at) VALUES (?, ?, ?)",
                (key, sqlite3.Binary(blob), _utc_now()),
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[bytes]:
        conn = sqlite3.connect(self.db_path)
        try:
            _ensure_db(conn)
            row = conn.execute("SELECT data FROM blobs WHERE key = ?", (key,)).fetchone()
            if not row:
                return None
            return bytes(row[0])
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            _ensure_db(conn)
            conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()


class MemoryBlobStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def put(self, key: str, blob: bytes) -> None:
        self._data[key] = bytes(blob)

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
