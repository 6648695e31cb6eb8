from __future__ import annotations

from time import perf_counter

from structlog.testing import capture_logs

from catalog_sync.services.errors import TransportError
from catalog_sync.telemetry import (
    RecordingTelemetrySink,
    StructlogTelemetrySink,
    TelemetryClient,
    build_telemetry_client,
)


def test_remote_events_carry_fixed_attributes() -> None:
    sink = RecordingTelemetrySink()
    client = TelemetryClient(sink=sink)

    started_at = perf_counter()
    client.remote_request(call="listing", path="/v3/playlistItems")
    client.remote_finished(call="listing", path="/v3/playlistItems", started_at=started_at, items=5)

    assert sink.names() == ["catalog.remote.request", "catalog.remote.finish"]
    _, finished = sink.events[1]
    assert set(finished) == {"call", "path", "duration_ms", "items"}
    assert finished["items"] == 5
    assert isinstance(finished["duration_ms"], int)
    assert finished["duration_ms"] >= 0


def test_failures_report_only_the_error_type() -> None:
    sink = RecordingTelemetrySink()
    client = TelemetryClient(sink=sink)
    error = TransportError("GET https://catalog.test/v3/search?key=secret-key failed")

    client.remote_failed(call="search", path="/v3/search", started_at=perf_counter(), error=error)
    client.page_failed(error=error)

    assert sink.names() == ["catalog.remote.error", "catalog.sync.page_failed"]
    assert sink.events[1][1] == {"error_type": "TransportError"}
    assert "secret-key" not in str(sink.events)


def test_disabled_client_has_no_sink() -> None:
    client = TelemetryClient.disabled()

    client.search_served(source="cache", results=2)

    assert client.enabled is False
    assert client.sink is None


def test_build_telemetry_client_selects_sink() -> None:
    disabled = build_telemetry_client(enabled=False, sink="log")
    muted = build_telemetry_client(enabled=True, sink="none")
    logging_client = build_telemetry_client(enabled=True, sink="log")

    assert disabled.enabled is False
    assert muted.enabled is False
    assert isinstance(logging_client.sink, StructlogTelemetrySink)


def test_structlog_sink_uses_the_event_name() -> None:
    client = TelemetryClient(sink=StructlogTelemetrySink())

    with capture_logs() as logs:
        client.search_served(source="remote", results=4)

    assert len(logs) == 1
    assert logs[0]["event"] == "catalog.search"
    assert logs[0]["source"] == "remote"
    assert logs[0]["results"] == 4
    assert logs[0]["log_level"] == "info"
