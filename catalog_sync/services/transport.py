from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from catalog_sync.services.errors import TransportError

LOGGER = logging.getLogger("catalog_sync.transport")

DEFAULT_USER_AGENT = "catalog-sync/0.1"
_MAX_REASON_LENGTH = 400


class Transport(Protocol):
    async def fetch(self, url: str) -> bytes:
        ...


class UrllibTransport:
    def __init__(
        self,
        *,
        timeout_seconds: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout_seconds = max(1.0, timeout_seconds)
        self._user_agent = user_agent

    async def fetch(self, url: str) -> bytes:
        return await asyncio.to_thread(self._fetch_blocking, url)

    def _fetch_blocking(self, url: str) -> bytes:
        request = Request(
            url,
            headers={
                "accept": "application/json",
                "user-agent": self._user_agent,
            },
            method="GET",
        )
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                return response.read()
        except HTTPError as exc:
            raw_body = exc.read().decode("utf-8", errors="replace")
            LOGGER.debug("catalog transport http error status=%s", exc.code)
            raise TransportError(
                _http_error_reason(exc.code, raw_body),
                status_code=int(exc.code),
            ) from exc
        except (URLError, TimeoutError, OSError) as exc:
            raise TransportError(f"Catalog request failed: {_summarize(exc)}") from exc


class FixtureTransport:
    """Serves canned response bodies keyed by endpoint path.

    A route key matches when the request path ends with it, so ``"/videos"``
    answers every detail call regardless of base URL or query string.
    Requests are recorded in order for inspection.
    """

    def __init__(self, routes: Mapping[str, bytes | str | Path]) -> None:
        self._routes = dict(routes)
        self.requested_urls: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.requested_urls.append(url)
        path = urlparse(url).path
        for suffix, body in self._routes.items():
            if path.endswith(suffix):
                return _load_body(body)
        raise TransportError(f"No fixture registered for {path}", status_code=404)

    def requests_for(self, suffix: str) -> list[str]:
        return [url for url in self.requested_urls if urlparse(url).path.endswith(suffix)]


class FailingTransport:
    def __init__(self, reason: str = "The network is unreachable.") -> None:
        self._reason = reason
        self.requested_urls: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.requested_urls.append(url)
        raise TransportError(self._reason)


def _load_body(body: bytes | str | Path) -> bytes:
    if isinstance(body, Path):
        return body.read_bytes()
    if isinstance(body, str):
        return body.encode("utf-8")
    return body


def _http_error_reason(status_code: int, raw_body: str) -> str:
    message = _extract_api_error_message(raw_body)
    if message is None:
        return f"Catalog request failed with HTTP {status_code}."
    return f"Catalog request failed with HTTP {status_code}: {message}"


def _extract_api_error_message(raw_body: str) -> str | None:
    if not raw_body.strip():
        return None
    try:
        parsed: Any = json.loads(raw_body)
    except json.JSONDecodeError:
        return _truncate(" ".join(raw_body.split()))
    if isinstance(parsed, dict):
        error = parsed.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return _truncate(message.strip())
        if isinstance(error, str) and error.strip():
            return _truncate(error.strip())
    return None


def _summarize(exc: Exception) -> str:
    raw = str(exc).strip()
    if not raw:
        raw = repr(exc)
    return _truncate(raw)


def _truncate(text: str) -> str:
    if len(text) <= _MAX_REASON_LENGTH:
        return text
    return f"{text[: _MAX_REASON_LENGTH - 3]}..."
