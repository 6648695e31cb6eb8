from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from catalog_sync.repositories.catalog_repository import CatalogCacheRepository, CatalogRecord
from catalog_sync.services.catalog_fetcher import RemoteCatalogFetcher
from catalog_sync.services.errors import CatalogSyncError, NotFound, SyncCancelledError
from catalog_sync.telemetry import TelemetryClient

LOGGER = logging.getLogger("catalog_sync.sync")

DEFAULT_LOAD_MORE_THRESHOLD = 48

SyncState = Literal["idle", "loading", "error"]


@dataclass(frozen=True)
class SyncStatus:
    state: SyncState
    reason: str | None = None

    @classmethod
    def idle(cls) -> SyncStatus:
        return cls(state="idle")

    @classmethod
    def loading(cls) -> SyncStatus:
        return cls(state="loading")

    @classmethod
    def error(cls, reason: str) -> SyncStatus:
        return cls(state="error", reason=reason)


@dataclass(frozen=True)
class SyncSnapshot:
    status: SyncStatus
    continuation_token: str | None
    catalog_exhausted: bool
    last_triggered_index: int
    record_count: int


class CatalogSyncOrchestrator:
    """Coordinates paging, caching and search for one catalog.

    State lives on the instance and is only mutated from coroutines running on
    the owning event loop. Page fetches are additionally serialized by a lock,
    and a queued fetch reads the continuation token only once it holds the
    lock, so a slow response can never overwrite a newer token.
    """

    def __init__(
        self,
        *,
        fetcher: RemoteCatalogFetcher,
        cache: CatalogCacheRepository,
        load_more_threshold: int = DEFAULT_LOAD_MORE_THRESHOLD,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._load_more_threshold = max(1, load_more_threshold)
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()
        self._status = SyncStatus.idle()
        self._continuation_token: str | None = None
        self._catalog_exhausted = False
        self._last_triggered_index = 0
        self._search_results: list[CatalogRecord] = []
        self._fetch_lock = asyncio.Lock()
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def continuation_token(self) -> str | None:
        return self._continuation_token

    @property
    def catalog_exhausted(self) -> bool:
        return self._catalog_exhausted

    @property
    def last_triggered_index(self) -> int:
        return self._last_triggered_index

    @property
    def search_results(self) -> list[CatalogRecord]:
        return list(self._search_results)

    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(
            status=self._status,
            continuation_token=self._continuation_token,
            catalog_exhausted=self._catalog_exhausted,
            last_triggered_index=self._last_triggered_index,
            record_count=self._cache.count(),
        )

    async def fetch_next_page(self) -> None:
        async with self._fetch_lock:
            await self._fetch_page_locked()

    async def refresh(self) -> None:
        async with self._fetch_lock:
            self._continuation_token = None
            self._catalog_exhausted = False
            self._last_triggered_index = 0
            await self._fetch_page_locked()

    def maybe_load_more(
        self,
        visible_index: int,
        threshold: int | None = None,
    ) -> asyncio.Task[None] | None:
        """Start a background page fetch when a new threshold band is reached.

        Fires only when ``visible_index`` is a positive multiple of the
        threshold and is at or beyond the index that last fired. Scrolling back
        to an earlier band never fetches. Must be called from the
        owning event loop. The returned task may be awaited but need not be;
        failures surface through :attr:`status`.
        """
        band = self._load_more_threshold if threshold is None else threshold
        if band <= 0 or visible_index <= 0:
            return None
        if visible_index % band != 0 or visible_index < self._last_triggered_index:
            return None

        self._last_triggered_index = visible_index
        LOGGER.debug("catalog load-more triggered visible_index=%s band=%s", visible_index, band)
        task = asyncio.get_running_loop().create_task(self.fetch_next_page())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def search(self, text: str) -> list[CatalogRecord]:
        query = text.strip()
        if not query:
            self._search_results = []
            self._status = SyncStatus.idle()
            return []

        local_results = self._cache.search(query)
        if local_results:
            self._search_results = local_results
            self._status = SyncStatus.idle()
            self._telemetry.search_served(source="cache", results=len(local_results))
            return list(local_results)

        self._status = SyncStatus.loading()
        try:
            page = await self._fetcher.search(query)
        except NotFound:
            self._search_results = []
            self._status = SyncStatus.idle()
            self._telemetry.search_served(source="remote", results=0)
            return []
        except asyncio.CancelledError:
            self._status = SyncStatus.error(str(SyncCancelledError()))
            raise
        except Exception as exc:
            reason = describe_error(exc)
            LOGGER.warning("catalog remote search failed reason=%s", reason)
            self._status = SyncStatus.error(reason)
            raise

        remote_results = self._cache.convert_ephemeral(page.listing, page.detail)
        self._search_results = remote_results
        self._status = SyncStatus.idle()
        self._telemetry.search_served(source="remote", results=len(remote_results))
        return list(remote_results)

    async def mark_position(self, content_id: str, seconds: float) -> None:
        self._cache.mark_position(content_id, seconds)

    async def set_favorite(self, content_id: str, favorite: bool) -> CatalogRecord | None:
        return self._cache.set_favorite(content_id, favorite)

    async def toggle_favorite(self, content_id: str) -> CatalogRecord | None:
        return self._cache.toggle_favorite(content_id)

    async def list_records(
        self,
        *,
        limit: int,
        offset: int = 0,
        favorites_only: bool = False,
    ) -> list[CatalogRecord]:
        return self._cache.list_records(limit=limit, offset=offset, favorites_only=favorites_only)

    async def count(self) -> int:
        return self._cache.count()

    async def aclose(self) -> None:
        pending = [task for task in self._background_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._background_tasks.clear()

    async def _fetch_page_locked(self) -> None:
        if self._catalog_exhausted:
            LOGGER.debug("catalog fetch skipped; no further pages")
            self._status = SyncStatus.idle()
            return

        token = self._continuation_token
        self._status = SyncStatus.loading()
        try:
            page = await self._fetcher.fetch_page(token)
            written = self._cache.upsert_merge(page.listing, page.detail)
        except asyncio.CancelledError:
            self._status = SyncStatus.error(str(SyncCancelledError()))
            raise
        except Exception as exc:
            reason = describe_error(exc)
            LOGGER.warning("catalog page fetch failed reason=%s", reason)
            self._status = SyncStatus.error(reason)
            self._telemetry.page_failed(error=exc)
            return

        self._continuation_token = page.continuation_token
        self._catalog_exhausted = page.continuation_token is None
        self._status = SyncStatus.idle()
        LOGGER.info(
            "catalog page synced written=%s exhausted=%s",
            len(written),
            self._catalog_exhausted,
        )
        self._telemetry.page_synced(written=len(written), exhausted=self._catalog_exhausted)


def describe_error(exc: BaseException, *, max_length: int = 400) -> str:
    message = str(exc).strip()
    if isinstance(exc, CatalogSyncError) and message:
        raw = message
    elif message:
        raw = f"{type(exc).__name__}: {message}"
    else:
        raw = type(exc).__name__
    if len(raw) <= max_length:
        return raw
    return f"{raw[: max_length - 3]}..."
