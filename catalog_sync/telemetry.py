"""Telemetry events emitted while syncing the catalog.

Each event has a fixed name and a fixed set of scalar attributes, built by one
method on :class:`TelemetryClient`. No method takes free-form attributes, so
API keys, salts and search text never reach a sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Literal, Protocol

import structlog

TelemetryValue = bool | int | float | str | None
Attributes = dict[str, TelemetryValue]


class TelemetrySink(Protocol):
    def emit(self, event_name: str, attributes: Attributes) -> None:
        ...


class StructlogTelemetrySink:
    """Writes each event as a structlog record on ``catalog_sync.telemetry``."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger("catalog_sync.telemetry")

    def emit(self, event_name: str, attributes: Attributes) -> None:
        self._logger.info(event_name, **attributes)


class RecordingTelemetrySink:
    def __init__(self) -> None:
        self.events: list[tuple[str, Attributes]] = []

    def emit(self, event_name: str, attributes: Attributes) -> None:
        self.events.append((event_name, dict(attributes)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@dataclass(frozen=True)
class TelemetryClient:
    sink: TelemetrySink | None = None

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls()

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    def remote_request(self, *, call: str, path: str) -> None:
        self._emit("catalog.remote.request", call=call, path=path)

    def remote_finished(self, *, call: str, path: str, started_at: float, items: int) -> None:
        self._emit(
            "catalog.remote.finish",
            call=call,
            path=path,
            duration_ms=_elapsed_ms(started_at),
            items=items,
        )

    def remote_failed(
        self,
        *,
        call: str,
        path: str,
        started_at: float,
        error: BaseException,
    ) -> None:
        # Only the type: transport messages can echo the request URL and its key.
        self._emit(
            "catalog.remote.error",
            call=call,
            path=path,
            duration_ms=_elapsed_ms(started_at),
            error_type=type(error).__name__,
        )

    def page_synced(self, *, written: int, exhausted: bool) -> None:
        self._emit("catalog.sync.page_synced", written=written, exhausted=exhausted)

    def page_failed(self, *, error: BaseException) -> None:
        self._emit("catalog.sync.page_failed", error_type=type(error).__name__)

    def search_served(self, *, source: Literal["cache", "remote"], results: int) -> None:
        self._emit("catalog.search", source=source, results=results)

    def http_request_started(self, *, request_id: str, method: str, path: str) -> None:
        self._emit("http.request.start", request_id=request_id, method=method, path=path)

    def http_request_finished(
        self,
        *,
        request_id: str,
        method: str,
        path: str,
        started_at: float,
        status_code: int,
    ) -> None:
        self._emit(
            "http.request.finish",
            request_id=request_id,
            method=method,
            path=path,
            duration_ms=_elapsed_ms(started_at),
            status_code=status_code,
        )

    def http_request_failed(
        self,
        *,
        request_id: str,
        method: str,
        path: str,
        started_at: float,
        error: BaseException,
    ) -> None:
        self._emit(
            "http.request.error",
            request_id=request_id,
            method=method,
            path=path,
            duration_ms=_elapsed_ms(started_at),
            error_type=type(error).__name__,
        )

    def _emit(self, event_name: str, **attributes: TelemetryValue) -> None:
        if self.sink is None:
            return
        self.sink.emit(event_name, attributes)


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if not enabled or sink == "none":
        return TelemetryClient.disabled()
    return TelemetryClient(sink=StructlogTelemetrySink())


def _elapsed_ms(started_at: float) -> int:
    return int((perf_counter() - started_at) * 1000)
