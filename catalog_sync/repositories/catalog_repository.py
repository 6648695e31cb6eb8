from __future__ import annotations

import html
import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote

from catalog_sync.models.catalog import DetailItem, Envelope
from catalog_sync.repositories.database import Database
from catalog_sync.services.duration import format_duration, is_valid_duration, parse_duration

LOGGER = logging.getLogger("catalog_sync.cache")

_URL_SAFE_CHARACTERS = ":/?#[]@!$&'()*+,;=%-._~"
_RECORD_COLUMNS = """
    content_id,
    title,
    published_at,
    thumbnail_url,
    view_count,
    like_count,
    duration,
    favorite,
    playback_position
"""


@dataclass(frozen=True)
class CatalogRecord:
    content_id: str
    title: str
    published_at: str
    thumbnail_url: str
    view_count: str
    like_count: str
    duration: str
    favorite: bool = False
    playback_position: float = 0.0


class CatalogCacheRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert_merge(self, listing: Envelope, detail: Envelope) -> list[CatalogRecord]:
        candidates = merge_envelopes(listing, detail)
        if not candidates:
            return []

        now_iso = _utc_now_iso()
        with self._db.connection() as conn:
            for candidate in candidates:
                conn.execute(
                    """
                    INSERT INTO catalog_records
                    (
                        content_id,
                        title,
                        published_at,
                        thumbnail_url,
                        view_count,
                        like_count,
                        duration,
                        favorite,
                        playback_position,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, 0, 0, ?, ?)
                    ON CONFLICT(content_id) DO UPDATE SET
                        title = excluded.title,
                        published_at = excluded.published_at,
                        thumbnail_url = excluded.thumbnail_url,
                        view_count = excluded.view_count,
                        like_count = excluded.like_count,
                        duration = excluded.duration,
                        updated_at = excluded.updated_at
                    """,
                    (
                        candidate.content_id,
                        candidate.title,
                        candidate.published_at,
                        candidate.thumbnail_url,
                        candidate.view_count,
                        candidate.like_count,
                        candidate.duration,
                        now_iso,
                        now_iso,
                    ),
                )
            written = _fetch_by_ids(conn, [candidate.content_id for candidate in candidates])

        LOGGER.debug(
            "catalog cache upsert candidates=%s written=%s",
            len(candidates),
            len(written),
        )
        return written

    def convert_ephemeral(self, listing: Envelope, detail: Envelope) -> list[CatalogRecord]:
        return merge_envelopes(listing, detail)

    def search(self, text: str) -> list[CatalogRecord]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM catalog_records
                WHERE casefold_contains(title, ?)
                ORDER BY published_at DESC, content_id ASC
                """,
                (text,),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def mark_position(self, content_id: str, seconds: float) -> None:
        clamped = max(0.0, float(seconds))
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE catalog_records
                SET playback_position = ?, updated_at = ?
                WHERE content_id = ?
                """,
                (clamped, _utc_now_iso(), content_id),
            )
        if cursor.rowcount == 0:
            LOGGER.debug("catalog cache position ignored for unknown content_id=%s", content_id)

    def set_favorite(self, content_id: str, favorite: bool) -> CatalogRecord | None:
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE catalog_records
                SET favorite = ?, updated_at = ?
                WHERE content_id = ?
                """,
                (int(favorite), _utc_now_iso(), content_id),
            )
            records = _fetch_by_ids(conn, [content_id])
        return records[0] if records else None

    def toggle_favorite(self, content_id: str) -> CatalogRecord | None:
        with self._db.connection() as conn:
            conn.execute(
                """
                UPDATE catalog_records
                SET favorite = 1 - favorite, updated_at = ?
                WHERE content_id = ?
                """,
                (_utc_now_iso(), content_id),
            )
            records = _fetch_by_ids(conn, [content_id])
        return records[0] if records else None

    def get(self, content_id: str) -> CatalogRecord | None:
        with self._db.connection() as conn:
            records = _fetch_by_ids(conn, [content_id])
        return records[0] if records else None

    def list_records(
        self,
        *,
        limit: int,
        offset: int = 0,
        favorites_only: bool = False,
    ) -> list[CatalogRecord]:
        where_clause = "WHERE favorite = 1" if favorites_only else ""
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM catalog_records
                {where_clause}
                ORDER BY published_at DESC, content_id ASC
                LIMIT ? OFFSET ?
                """,
                (max(1, limit), max(0, offset)),
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def count(self) -> int:
        with self._db.connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM catalog_records").fetchone()
        if row is None:
            return 0
        return int(row["total"])


def merge_envelopes(listing: Envelope, detail: Envelope) -> list[CatalogRecord]:
    """Pair listing items with their detail items and build cache candidates.

    A listing item without a content id, or without a matching detail item,
    is incomplete and dropped. Candidates whose duration does not parse to a
    usable value are dropped as well. Order follows the listing; a content
    id listed twice yields a single candidate.
    """
    details = detail.detail_by_content_id()
    candidates: list[CatalogRecord] = []
    seen: set[str] = set()
    for item in listing.items or []:
        content_id = item.content_id
        if content_id is None or content_id in seen:
            continue
        detail_item = details.get(content_id)
        if detail_item is None:
            LOGGER.debug("catalog merge skipped item without detail content_id=%s", content_id)
            continue
        snippet = item.snippet
        if snippet is None or snippet.title is None:
            continue

        candidate = _build_candidate(
            content_id=content_id,
            title=snippet.title,
            published_at=snippet.published_at,
            thumbnail_url=snippet.thumbnails.best_url() if snippet.thumbnails else "",
            detail_item=detail_item,
        )
        if candidate is None:
            LOGGER.debug("catalog merge dropped invalid duration content_id=%s", content_id)
            continue
        seen.add(content_id)
        candidates.append(candidate)
    return candidates


def _build_candidate(
    *,
    content_id: str,
    title: str,
    published_at: str | None,
    thumbnail_url: str,
    detail_item: DetailItem,
) -> CatalogRecord | None:
    details = detail_item.content_details
    duration = parse_duration(details.duration if details is not None else None)
    if not is_valid_duration(duration):
        return None

    statistics = detail_item.statistics
    return CatalogRecord(
        content_id=content_id,
        title=html.unescape(title).strip(),
        published_at=published_at or "",
        thumbnail_url=quote(thumbnail_url, safe=_URL_SAFE_CHARACTERS) if thumbnail_url else "",
        view_count=(statistics.view_count if statistics else None) or "",
        like_count=(statistics.like_count if statistics else None) or "",
        duration=format_duration(duration),
    )


def _fetch_by_ids(conn: sqlite3.Connection, content_ids: list[str]) -> list[CatalogRecord]:
    if not content_ids:
        return []
    placeholders = ", ".join("?" for _ in content_ids)
    rows = conn.execute(
        f"""
        SELECT {_RECORD_COLUMNS}
        FROM catalog_records
        WHERE content_id IN ({placeholders})
        """,
        tuple(content_ids),
    ).fetchall()
    by_id = {str(row["content_id"]): _row_to_record(row) for row in rows}
    return [by_id[content_id] for content_id in content_ids if content_id in by_id]


def _row_to_record(row: sqlite3.Row) -> CatalogRecord:
    return CatalogRecord(
        content_id=str(row["content_id"]),
        title=str(row["title"]),
        published_at=str(row["published_at"]),
        thumbnail_url=str(row["thumbnail_url"]),
        view_count=str(row["view_count"]),
        like_count=str(row["like_count"]),
        duration=str(row["duration"]),
        favorite=bool(row["favorite"]),
        playback_position=float(row["playback_position"]),
    )


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()
