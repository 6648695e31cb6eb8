from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".catalog-sync"
SEARCH_ORDERS: frozenset[str] = frozenset({"date", "rating", "relevance"})
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (
    ("db_path", Path("catalog.db")),
    ("log_dir", Path("logs")),
)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _data_dir_default_note(relative_path: Path) -> str:
    return f"Defaults to `${{CATALOG_SYNC_DATA_DIR}}/{relative_path}` when not explicitly set."


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class AppSettings(BaseSettings):
    """
    Runtime configuration for catalog-sync.

    Every option is read from `CATALOG_SYNC_*` environment variables (or a
    `.env` file) and documented here with its default.
    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Core paths.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for the local cache and logs.",
    )
    db_path: Path = Field(
        default=_default_in_data_dir(Path("catalog.db")),
        description=f"SQLite cache path. {_data_dir_default_note(Path('catalog.db'))}",
    )

    # Remote catalog API.
    api_base_url: str = Field(
        default="https://www.googleapis.com/youtube/v3",
        description="Base URL of the remote catalog API (override for a custom host).",
    )
    api_keys: str | None = Field(
        default=None,
        description="Comma-separated API keys; one is picked per request.",
    )
    playlist_id: str | None = Field(
        default=None,
        description="Playlist whose items make up the catalog listing.",
    )
    channel_id: str | None = Field(
        default=None,
        description="Channel that remote search queries are restricted to.",
    )
    credential_salt: str | None = Field(
        default=None,
        description=(
            "When set, api_keys/playlist_id/channel_id are hex strings XOR-obscured with "
            "this salt. Obscurement only; not a security boundary."
        ),
    )
    listing_page_size: int = Field(
        default=50,
        description="Items requested per listing page (capped at 50 by the API).",
    )
    search_page_size: int = Field(
        default=16,
        description="Items requested per remote search (capped at 50 by the API).",
    )
    search_order: Literal["date", "rating", "relevance"] = Field(
        default="date",
        description="Ordering requested for remote search results.",
    )
    load_more_threshold: int = Field(
        default=48,
        ge=1,
        description="Band size, in list positions, that triggers loading the next page.",
    )
    http_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for each remote catalog request.",
    )
    http_user_agent: str = Field(
        default="catalog-sync/0.1",
        description="User-Agent sent with remote catalog requests.",
    )

    # Logging.
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description=f"Directory for log files. {_data_dir_default_note(Path('logs'))}",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level (stdout).",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    @property
    def api_key_list(self) -> list[str]:
        if self.api_keys is None:
            return []
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @field_validator("search_order", mode="before")
    @classmethod
    def _normalize_search_order(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("CATALOG_SYNC_SEARCH_ORDER must be a string.")
        normalized = value.strip().lower()
        if normalized in SEARCH_ORDERS:
            return normalized
        raise ValueError("CATALOG_SYNC_SEARCH_ORDER must be set to: date, rating, relevance.")

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("CATALOG_SYNC_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("CATALOG_SYNC_TELEMETRY_SINK must be set to: none, log.")

    @field_validator("api_base_url", mode="before")
    @classmethod
    def _normalize_api_base_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("CATALOG_SYNC_API_BASE_URL must be a string.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError("CATALOG_SYNC_API_BASE_URL must not be empty.")
        return normalized

    @field_validator("listing_page_size", "search_page_size")
    @classmethod
    def _clamp_page_size(cls, value: int) -> int:
        return max(1, min(50, value))

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator("api_keys", "playlist_id", "channel_id", "credential_salt", mode="before")
    @classmethod
    def _normalize_optional_strings(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)


def _validate_credentials(settings: AppSettings) -> None:
    errors: list[str] = []

    if not settings.api_key_list:
        errors.append("CATALOG_SYNC_API_KEYS is required (comma-separated).")
    if settings.playlist_id is None:
        errors.append("CATALOG_SYNC_PLAYLIST_ID is required.")
    if settings.credential_salt is not None:
        hex_values = [*settings.api_key_list, settings.playlist_id or "", settings.channel_id or ""]
        if any(not _is_hex(value) for value in hex_values):
            errors.append(
                "CATALOG_SYNC_CREDENTIAL_SALT is set, so keys and ids must be hex-encoded."
            )

    if errors:
        bullets = "\n".join(f"- {message}" for message in errors)
        raise ValueError(f"Invalid catalog credential configuration:\n{bullets}")


def _is_hex(value: str) -> bool:
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings(*, validate_credentials: bool = True) -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    settings = _resolve_path_fields(settings)

    if validate_credentials:
        _validate_credentials(settings)

    return settings
