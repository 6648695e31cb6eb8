from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS catalog_records (
    content_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    published_at TEXT NOT NULL,
    thumbnail_url TEXT NOT NULL,
    view_count TEXT NOT NULL,
    like_count TEXT NOT NULL,
    duration TEXT NOT NULL,
    favorite INTEGER NOT NULL DEFAULT 0,
    playback_position REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_catalog_records_published_at
ON catalog_records(published_at DESC);

CREATE INDEX IF NOT EXISTS idx_catalog_records_favorite_published_at
ON catalog_records(favorite, published_at DESC);
"""


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold_contains", 2, _casefold_contains, deterministic=True)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)


def _casefold_contains(haystack: object, needle: object) -> int:
    # SQLite's LIKE/lower() only fold ASCII; titles are frequently not ASCII.
    if not isinstance(haystack, str) or not isinstance(needle, str):
        return 0
    return int(needle.casefold() in haystack.casefold())
