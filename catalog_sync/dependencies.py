from __future__ import annotations

from functools import lru_cache

from catalog_sync.config import AppSettings, load_settings
from catalog_sync.repositories.catalog_repository import CatalogCacheRepository
from catalog_sync.repositories.database import Database
from catalog_sync.services.catalog_fetcher import RemoteCatalogFetcher
from catalog_sync.services.credentials import (
    CredentialProvider,
    ObscuredCredentialProvider,
    StaticCredentialProvider,
)
from catalog_sync.services.endpoints import CatalogEndpoints
from catalog_sync.services.sync_orchestrator import CatalogSyncOrchestrator
from catalog_sync.services.transport import Transport, UrllibTransport
from catalog_sync.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_database() -> Database:
    database = Database(get_settings().db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_cache_repository() -> CatalogCacheRepository:
    return CatalogCacheRepository(get_database())


@lru_cache(maxsize=1)
def get_transport() -> Transport:
    settings = get_settings()
    return UrllibTransport(
        timeout_seconds=settings.http_timeout_seconds,
        user_agent=settings.http_user_agent,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> CatalogSyncOrchestrator:
    settings = get_settings()
    telemetry = get_telemetry()
    endpoints = CatalogEndpoints(
        credentials=build_credential_provider(settings),
        base_url=settings.api_base_url,
        listing_page_size=settings.listing_page_size,
        search_page_size=settings.search_page_size,
        search_order=settings.search_order,
    )
    return CatalogSyncOrchestrator(
        fetcher=RemoteCatalogFetcher(
            transport=get_transport(),
            endpoints=endpoints,
            telemetry=telemetry,
        ),
        cache=get_cache_repository(),
        load_more_threshold=settings.load_more_threshold,
        telemetry=telemetry,
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def build_credential_provider(settings: AppSettings) -> CredentialProvider:
    if settings.credential_salt is not None:
        return ObscuredCredentialProvider.from_hex(
            salt=settings.credential_salt,
            api_keys=settings.api_key_list,
            playlist_id=settings.playlist_id or "",
            channel_id=settings.channel_id or "",
        )
    return StaticCredentialProvider(
        api_keys=settings.api_key_list,
        playlist_id=settings.playlist_id or "",
        channel_id=settings.channel_id or "",
    )


def reset_cached_dependencies() -> None:
    get_orchestrator.cache_clear()
    get_transport.cache_clear()
    get_cache_repository.cache_clear()
    get_database.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
