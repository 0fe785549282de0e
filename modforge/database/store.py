# modforge/database/store.py
from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, ContextManager, Protocol

logger = logging.getLogger(__name__)

__all__ = ["ContentSession", "ContentDatabase", "SqliteContentDatabase", "SCHEMA_SQL"]



SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS content (
    kind TEXT NOT NULL,
    id TEXT NOT NULL,
    path TEXT NOT NULL,          -- relative to the game directory
    body TEXT NOT NULL,          -- document as compact JSON
    PRIMARY KEY (kind, id)
);
"""



class ContentSession(Protocol):
    def insertOrUpdate(self, kind: str, entryId: str, relativePath: str, document: Any) -> None: ...



class ContentDatabase(Protocol):
    """Structured content store fed from mod content. One session per batch."""

    def open(self) -> ContextManager[ContentSession]: ...



class _SqliteSession:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insertOrUpdate(self, kind: str, entryId: str, relativePath: str, document: Any) -> None:
        body = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
        self._conn.execute(
            "INSERT OR REPLACE INTO content (kind, id, path, body) VALUES (?, ?, ?, ?)",
            (kind, entryId, relativePath, body),
        )



class SqliteContentDatabase:
    """Working database file; the reconciler recreates it from the pristine baseline on rebuild."""

    def __init__(self, dbPath: Path) -> None:
        self.dbPath = dbPath

    @contextmanager
    def open(self) -> Iterator[_SqliteSession]:
        self.dbPath.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.dbPath))
        try:
            conn.executescript(SCHEMA_SQL)
            yield _SqliteSession(conn)
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def fetch(self, kind: str, entryId: str) -> Any | None:
        """Stored document for (kind, id), or None."""
        if not self.dbPath.exists():
            return None
        conn = sqlite3.connect(str(self.dbPath))
        try:
            conn.executescript(SCHEMA_SQL)
            row = conn.execute("SELECT body FROM content WHERE kind = ? AND id = ?", (kind, entryId)).fetchone()
        finally:
            conn.close()
        return json.loads(row[0]) if row else None

    def count(self) -> int:
        if not self.dbPath.exists():
            return 0
        conn = sqlite3.connect(str(self.dbPath))
        try:
            conn.executescript(SCHEMA_SQL)
            return int(conn.execute("SELECT COUNT(*) FROM content").fetchone()[0])
        finally:
            conn.close()
