from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlencode

from catalog_sync.services.credentials import CredentialProvider

SearchOrder = Literal["date", "rating", "relevance"]

DEFAULT_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
LISTING_PATH = "/playlistItems"
DETAIL_PATH = "/videos"
SEARCH_PATH = "/search"

LISTING_PART = "snippet"
DETAIL_PART = "statistics,contentDetails"
SEARCH_PART = "snippet"
MAX_PAGE_SIZE = 50
DEFAULT_LISTING_PAGE_SIZE = 50
DEFAULT_SEARCH_PAGE_SIZE = 16


@dataclass(frozen=True)
class CatalogEndpoints:
    credentials: CredentialProvider
    base_url: str = DEFAULT_API_BASE_URL
    listing_page_size: int = DEFAULT_LISTING_PAGE_SIZE
    search_page_size: int = DEFAULT_SEARCH_PAGE_SIZE
    listing_order: SearchOrder = "date"
    search_order: SearchOrder = "date"

    def listing_url(self, continuation_token: str | None = None) -> str:
        params: dict[str, str] = {
            "part": LISTING_PART,
            "playlistId": self.credentials.playlist_id(),
            "key": self.credentials.api_key(),
            "maxResults": str(_clamp_page_size(self.listing_page_size)),
            "order": self.listing_order,
        }
        if continuation_token is not None and continuation_token.strip():
            params["pageToken"] = continuation_token.strip()
        return self._url(LISTING_PATH, params)

    def detail_url(self, content_ids: Sequence[str]) -> str:
        params = {
            "part": DETAIL_PART,
            "key": self.credentials.api_key(),
            "id": ",".join(content_ids),
        }
        return self._url(DETAIL_PATH, params)

    def search_url(self, text: str) -> str:
        params = {
            "part": SEARCH_PART,
            "key": self.credentials.api_key(),
            "maxResults": str(_clamp_page_size(self.search_page_size)),
            "q": text,
            "type": "video",
        }
        channel_id = self.credentials.channel_id()
        if channel_id:
            params["channelId"] = channel_id
        if self.search_order != "relevance":
            params["order"] = self.search_order
        return self._url(SEARCH_PATH, params)

    def _url(self, path: str, params: dict[str, str]) -> str:
        return f"{self.base_url.rstrip('/')}{path}?{urlencode(params)}"


def _clamp_page_size(page_size: int) -> int:
    return max(1, min(MAX_PAGE_SIZE, page_size))
