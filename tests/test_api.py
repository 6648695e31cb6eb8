from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

import pytest
from fastapi.testclient import TestClient

from catalog_sync import dependencies
from catalog_sync.main import create_app
from catalog_sync.services.transport import FixtureTransport


@pytest.fixture
def api_transport(page_transport: FixtureTransport) -> FixtureTransport:
    return page_transport


@pytest.fixture
def client(
    api_transport: FixtureTransport,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    monkeypatch.setattr(dependencies, "get_transport", lru_cache(maxsize=1)(lambda: api_transport))
    dependencies.reset_cached_dependencies()

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

    dependencies.reset_cached_dependencies()


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_is_echoed_or_generated(client: TestClient) -> None:
    echoed = client.get("/health", headers={"X-Request-ID": "req-123"})
    generated = client.get("/health")

    assert echoed.headers["X-Request-ID"] == "req-123"
    assert generated.headers["X-Request-ID"]


def test_status_starts_idle(client: TestClient) -> None:
    response = client.get("/catalog/status")

    assert response.status_code == 200
    assert response.json() == {
        "state": "idle",
        "reason": None,
        "continuation_token": None,
        "catalog_exhausted": False,
        "last_triggered_index": 0,
        "record_count": 0,
    }


def test_next_page_syncs_and_lists_records(client: TestClient) -> None:
    synced = client.post("/catalog/next-page")
    listed = client.get("/catalog/videos", params={"limit": 2})

    assert synced.status_code == 200
    assert synced.json()["state"] == "idle"
    assert synced.json()["continuation_token"] == "CAEQAA"
    assert synced.json()["record_count"] == 3
    body = listed.json()
    assert body["count"] == 3
    assert [item["content_id"] for item in body["items"]] == ["bq02LMjcCns", "swift0000001"]
    assert body["items"][0]["duration"] == "04:46"
    assert body["items"][0]["view_count"] == "5663"


def test_refresh_restarts_paging(client: TestClient, api_transport: FixtureTransport) -> None:
    client.post("/catalog/next-page")
    response = client.post("/catalog/refresh")

    assert response.status_code == 200
    assert response.json()["continuation_token"] == "CAEQAA"
    assert all("pageToken" not in url for url in api_transport.requests_for("/playlistItems"))


def test_search_serves_cached_matches(client: TestClient, api_transport: FixtureTransport) -> None:
    client.post("/catalog/next-page")

    response = client.get("/catalog/search", params={"q": "ipad"})

    assert response.status_code == 200
    assert [item["content_id"] for item in response.json()["items"]] == ["bq02LMjcCns"]
    assert api_transport.requests_for("/search") == []


def test_search_with_blank_query_is_empty(client: TestClient) -> None:
    response = client.get("/catalog/search", params={"q": "  "})

    assert response.status_code == 200
    assert response.json() == {"items": [], "count": 0}


def test_remote_search_failure_maps_to_bad_gateway(client: TestClient) -> None:
    response = client.get("/catalog/search", params={"q": "not cached"})

    assert response.status_code == 502
    assert "No fixture registered" in response.json()["detail"]
    assert client.get("/catalog/status").json()["state"] == "error"


def test_position_and_favorite_updates(client: TestClient) -> None:
    client.post("/catalog/next-page")

    position = client.put("/catalog/videos/bq02LMjcCns/position", json={"seconds": 95.5})
    toggled = client.post("/catalog/videos/swift0000001/favorite")
    favorites = client.get("/catalog/videos", params={"favorites_only": True})
    cleared = client.put("/catalog/videos/swift0000001/favorite", json={"favorite": False})
    videos = client.get("/catalog/videos").json()["items"]

    assert position.status_code == 204
    assert toggled.status_code == 200
    assert toggled.json()["favorite"] is True
    assert [item["content_id"] for item in favorites.json()["items"]] == ["swift0000001"]
    assert cleared.json()["favorite"] is False
    by_id = {item["content_id"]: item for item in videos}
    assert by_id["bq02LMjcCns"]["playback_position"] == 95.5


def test_unknown_records_return_not_found(client: TestClient) -> None:
    toggled = client.post("/catalog/videos/unknown/favorite")
    cleared = client.put("/catalog/videos/unknown/favorite", json={"favorite": False})
    position = client.put("/catalog/videos/unknown/position", json={"seconds": 3})

    assert toggled.status_code == 404
    assert cleared.status_code == 404
    assert position.status_code == 204


def test_negative_position_is_rejected(client: TestClient) -> None:
    response = client.put("/catalog/videos/bq02LMjcCns/position", json={"seconds": -1})

    assert response.status_code == 422


def test_load_more_reports_whether_a_fetch_started(client: TestClient) -> None:
    off_band = client.post("/catalog/load-more", json={"visible_index": 50})
    on_band = client.post("/catalog/load-more", json={"visible_index": 48})
    repeated = client.post("/catalog/load-more", json={"visible_index": 48})
    earlier = client.post("/catalog/load-more", json={"visible_index": 24, "threshold": 24})
    invalid = client.post("/catalog/load-more", json={"visible_index": -1})

    assert off_band.json() == {"triggered": False}
    assert on_band.json() == {"triggered": True}
    assert repeated.json() == {"triggered": True}
    assert earlier.json() == {"triggered": False}
    assert invalid.status_code == 422
    assert client.get("/catalog/status").json()["last_triggered_index"] == 48
