from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from urllib.parse import urlparse

from catalog_sync.models.catalog import Envelope, parse_envelope
from catalog_sync.services.endpoints import CatalogEndpoints
from catalog_sync.services.errors import DecodingError, NotFound
from catalog_sync.services.transport import Transport
from catalog_sync.telemetry import TelemetryClient

LOGGER = logging.getLogger("catalog_sync.fetcher")


@dataclass(frozen=True)
class CatalogPage:
    listing: Envelope
    detail: Envelope

    @property
    def continuation_token(self) -> str | None:
        return self.listing.continuation_token


class RemoteCatalogFetcher:
    def __init__(
        self,
        *,
        transport: Transport,
        endpoints: CatalogEndpoints,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._transport = transport
        self._endpoints = endpoints
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    async def fetch_page(self, continuation_token: str | None = None) -> CatalogPage:
        listing = await self._load(self._endpoints.listing_url(continuation_token), call="listing")
        if listing.items is None:
            raise DecodingError("Catalog listing response has no items.")

        detail = await self._load_details(listing.content_ids())
        LOGGER.info(
            "catalog page fetched listing_items=%s detail_items=%s has_next=%s",
            len(listing.items),
            len(detail.items or []),
            listing.continuation_token is not None,
        )
        return CatalogPage(listing=listing, detail=detail)

    async def search(self, text: str) -> CatalogPage:
        results = await self._load(self._endpoints.search_url(text), call="search")
        if results.items is None:
            raise DecodingError("Catalog search response has no items.")
        if not results.items:
            raise NotFound()

        detail = await self._load_details(results.content_ids())
        LOGGER.info(
            "catalog search fetched results=%s detail_items=%s",
            len(results.items),
            len(detail.items or []),
        )
        return CatalogPage(listing=results, detail=detail)

    async def _load_details(self, content_ids: list[str]) -> Envelope:
        if not content_ids:
            return Envelope.empty(kind="youtube#videoListResponse")
        detail = await self._load(self._endpoints.detail_url(content_ids), call="detail")
        if detail.items is None:
            raise DecodingError("Catalog detail response has no items.")
        return detail

    async def _load(self, url: str, *, call: str) -> Envelope:
        path = urlparse(url).path
        started_at = perf_counter()
        self._telemetry.remote_request(call=call, path=path)
        try:
            raw_body = await self._transport.fetch(url)
            envelope = parse_envelope(raw_body)
        except Exception as exc:
            self._telemetry.remote_failed(call=call, path=path, started_at=started_at, error=exc)
            raise
        self._telemetry.remote_finished(
            call=call,
            path=path,
            started_at=started_at,
            items=len(envelope.items) if envelope.items is not None else -1,
        )
        return envelope
