from __future__ import annotations

from pathlib import Path

import pytest

from catalog_sync.config import load_settings
from catalog_sync.dependencies import build_credential_provider
from catalog_sync.services.credentials import (
    ObscuredCredentialProvider,
    StaticCredentialProvider,
    obscure,
)


def test_paths_default_inside_data_dir(tmp_path: Path) -> None:
    settings = load_settings()

    data_dir = (tmp_path / "runtime-data").resolve()
    assert settings.data_dir == data_dir
    assert settings.db_path == data_dir / "catalog.db"
    assert settings.log_dir == data_dir / "logs"


def test_explicit_db_path_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_SYNC_DB_PATH", str(tmp_path / "elsewhere" / "cache.db"))

    settings = load_settings()

    assert settings.db_path == (tmp_path / "elsewhere" / "cache.db").resolve()


def test_defaults_match_remote_api_limits() -> None:
    settings = load_settings()

    assert settings.api_key_list == ["test-key"]
    assert settings.listing_page_size == 50
    assert settings.search_page_size == 16
    assert settings.search_order == "date"
    assert settings.load_more_threshold == 48


def test_api_keys_are_split_and_page_sizes_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_SYNC_API_KEYS", " key-one, ,key-two ")
    monkeypatch.setenv("CATALOG_SYNC_LISTING_PAGE_SIZE", "500")
    monkeypatch.setenv("CATALOG_SYNC_SEARCH_PAGE_SIZE", "0")
    monkeypatch.setenv("CATALOG_SYNC_SEARCH_ORDER", " Rating ")
    monkeypatch.setenv("CATALOG_SYNC_API_BASE_URL", "https://catalog.test/v3/")

    settings = load_settings()

    assert settings.api_key_list == ["key-one", "key-two"]
    assert settings.listing_page_size == 50
    assert settings.search_page_size == 1
    assert settings.search_order == "rating"
    assert settings.api_base_url == "https://catalog.test/v3"


def test_invalid_search_order_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_SYNC_SEARCH_ORDER", "views")

    with pytest.raises(ValueError, match="CATALOG_SYNC_SEARCH_ORDER"):
        load_settings()


def test_missing_credentials_are_listed_together(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOG_SYNC_API_KEYS")
    monkeypatch.setenv("CATALOG_SYNC_PLAYLIST_ID", "  ")

    with pytest.raises(ValueError) as exc_info:
        load_settings()

    message = str(exc_info.value)
    assert "- CATALOG_SYNC_API_KEYS is required" in message
    assert "- CATALOG_SYNC_PLAYLIST_ID is required." in message


def test_credentials_are_optional_when_not_validated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOG_SYNC_API_KEYS")

    settings = load_settings(validate_credentials=False)

    assert settings.api_key_list == []


def test_salted_credentials_must_be_hex(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_SYNC_CREDENTIAL_SALT", "pepper")

    with pytest.raises(ValueError, match="hex-encoded"):
        load_settings()


def test_credential_provider_follows_salt(monkeypatch: pytest.MonkeyPatch) -> None:
    plain = build_credential_provider(load_settings())

    monkeypatch.setenv("CATALOG_SYNC_CREDENTIAL_SALT", "pepper")
    monkeypatch.setenv("CATALOG_SYNC_API_KEYS", obscure("secret-key", salt="pepper").hex())
    monkeypatch.setenv("CATALOG_SYNC_PLAYLIST_ID", obscure("PL-secret", salt="pepper").hex())
    monkeypatch.setenv("CATALOG_SYNC_CHANNEL_ID", obscure("UC-secret", salt="pepper").hex())
    obscured = build_credential_provider(load_settings())

    assert isinstance(plain, StaticCredentialProvider)
    assert plain.playlist_id() == "PL-test"
    assert isinstance(obscured, ObscuredCredentialProvider)
    assert obscured.api_key() == "secret-key"
    assert obscured.playlist_id() == "PL-secret"
    assert obscured.channel_id() == "UC-secret"
