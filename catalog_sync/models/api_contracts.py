from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from catalog_sync.repositories.catalog_repository import CatalogRecord
from catalog_sync.services.sync_orchestrator import SyncSnapshot


class CatalogRecordResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content_id: str
    title: str
    published_at: str
    thumbnail_url: str
    view_count: str
    like_count: str
    duration: str
    favorite: bool
    playback_position: float

    @classmethod
    def from_record(cls, record: CatalogRecord) -> CatalogRecordResponse:
        return cls(
            content_id=record.content_id,
            title=record.title,
            published_at=record.published_at,
            thumbnail_url=record.thumbnail_url,
            view_count=record.view_count,
            like_count=record.like_count,
            duration=record.duration,
            favorite=record.favorite,
            playback_position=record.playback_position,
        )


class CatalogRecordListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[CatalogRecordResponse]
    count: int


class SyncStatusResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    state: Literal["idle", "loading", "error"]
    reason: str | None = None
    continuation_token: str | None = None
    catalog_exhausted: bool
    last_triggered_index: int
    record_count: int

    @classmethod
    def from_snapshot(cls, snapshot: SyncSnapshot) -> SyncStatusResponse:
        return cls(
            state=snapshot.status.state,
            reason=snapshot.status.reason,
            continuation_token=snapshot.continuation_token,
            catalog_exhausted=snapshot.catalog_exhausted,
            last_triggered_index=snapshot.last_triggered_index,
            record_count=snapshot.record_count,
        )


class LoadMoreRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    visible_index: int = Field(ge=0)
    threshold: int | None = Field(default=None, ge=1)


class LoadMoreResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    triggered: bool


class PlaybackPositionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    seconds: float = Field(ge=0)


class FavoriteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    favorite: bool
