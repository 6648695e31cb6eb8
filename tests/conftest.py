from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping, Sequence
from pathlib import Path
from urllib.parse import urlparse

import pytest

from catalog_sync.dependencies import reset_cached_dependencies
from catalog_sync.models.catalog import Envelope
from catalog_sync.repositories.catalog_repository import CatalogCacheRepository
from catalog_sync.repositories.database import Database
from catalog_sync.services.catalog_fetcher import RemoteCatalogFetcher
from catalog_sync.services.credentials import StaticCredentialProvider
from catalog_sync.services.endpoints import CatalogEndpoints
from catalog_sync.services.errors import TransportError
from catalog_sync.services.sync_orchestrator import CatalogSyncOrchestrator
from catalog_sync.services.transport import FixtureTransport, Transport
from catalog_sync.telemetry import RecordingTelemetrySink, TelemetryClient

FIXTURES_DIR = Path(__file__).parent / "fixtures"
TEST_BASE_URL = "https://catalog.test/v3"


class ScriptedTransport:
    """Serves bodies per path suffix in order; the last body repeats."""

    def __init__(self, script: Mapping[str, Sequence[bytes | Exception]]) -> None:
        self._script = {suffix: list(bodies) for suffix, bodies in script.items()}
        self.requested_urls: list[str] = []

    async def fetch(self, url: str) -> bytes:
        self.requested_urls.append(url)
        path = urlparse(url).path
        for suffix, bodies in self._script.items():
            if not path.endswith(suffix):
                continue
            body = bodies.pop(0) if len(bodies) > 1 else bodies[0]
            if isinstance(body, Exception):
                raise body
            return body
        raise TransportError(f"No fixture registered for {path}", status_code=404)

    def requests_for(self, suffix: str) -> list[str]:
        return [url for url in self.requested_urls if urlparse(url).path.endswith(suffix)]


@pytest.fixture(autouse=True)
def _catalog_env_defaults(  # pyright: ignore[reportUnusedFunction]
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[None]:
    monkeypatch.setenv("CATALOG_SYNC_DATA_DIR", str(tmp_path / "runtime-data"))
    monkeypatch.setenv("CATALOG_SYNC_API_BASE_URL", TEST_BASE_URL)
    monkeypatch.setenv("CATALOG_SYNC_API_KEYS", "test-key")
    monkeypatch.setenv("CATALOG_SYNC_PLAYLIST_ID", "PL-test")
    monkeypatch.setenv("CATALOG_SYNC_CHANNEL_ID", "UC-test")
    monkeypatch.setenv("CATALOG_SYNC_TELEMETRY_SINK", "none")
    for name in ("CATALOG_SYNC_DB_PATH", "CATALOG_SYNC_LOG_DIR", "CATALOG_SYNC_CREDENTIAL_SALT"):
        monkeypatch.delenv(name, raising=False)
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()


@pytest.fixture
def fixture_bytes() -> Callable[[str], bytes]:
    def _load(name: str) -> bytes:
        return (FIXTURES_DIR / name).read_bytes()

    return _load


@pytest.fixture
def fixture_envelope(fixture_bytes: Callable[[str], bytes]) -> Callable[[str], Envelope]:
    def _load(name: str) -> Envelope:
        return Envelope.model_validate(json.loads(fixture_bytes(name)))

    return _load


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "catalog.db")
    db.initialize()
    return db


@pytest.fixture
def cache_repository(database: Database) -> CatalogCacheRepository:
    return CatalogCacheRepository(database)


@pytest.fixture
def endpoints() -> CatalogEndpoints:
    return CatalogEndpoints(
        credentials=StaticCredentialProvider(
            api_keys=["test-key"],
            playlist_id="PL-test",
            channel_id="UC-test",
        ),
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def telemetry_sink() -> RecordingTelemetrySink:
    return RecordingTelemetrySink()


@pytest.fixture
def page_transport() -> FixtureTransport:
    """First listing page plus its details; the listing advertises a next page."""
    return FixtureTransport(
        {
            "/playlistItems": FIXTURES_DIR / "playlist_page_1.json",
            "/videos": FIXTURES_DIR / "videos_page_1.json",
        }
    )


@pytest.fixture
def two_page_transport(fixture_bytes: Callable[[str], bytes]) -> ScriptedTransport:
    return ScriptedTransport(
        {
            "/playlistItems": [
                fixture_bytes("playlist_page_1.json"),
                fixture_bytes("playlist_page_2.json"),
            ],
            "/videos": [
                fixture_bytes("videos_page_1.json"),
                fixture_bytes("videos_page_2.json"),
            ],
        }
    )


@pytest.fixture
def search_transport() -> FixtureTransport:
    return FixtureTransport(
        {
            "/search": FIXTURES_DIR / "search_results.json",
            "/videos": FIXTURES_DIR / "search_details.json",
        }
    )


@pytest.fixture
def build_orchestrator(
    cache_repository: CatalogCacheRepository,
    endpoints: CatalogEndpoints,
    telemetry_sink: RecordingTelemetrySink,
) -> Callable[..., CatalogSyncOrchestrator]:
    def _build(transport: Transport, *, load_more_threshold: int = 48) -> CatalogSyncOrchestrator:
        telemetry = TelemetryClient(sink=telemetry_sink)
        return CatalogSyncOrchestrator(
            fetcher=RemoteCatalogFetcher(
                transport=transport,
                endpoints=endpoints,
                telemetry=telemetry,
            ),
            cache=cache_repository,
            load_more_threshold=load_more_threshold,
            telemetry=telemetry,
        )

    return _build


@pytest.fixture
def scripted_transport() -> type[ScriptedTransport]:
    return ScriptedTransport
