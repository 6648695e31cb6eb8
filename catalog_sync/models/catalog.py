"""Wire models for the remote catalog API.

Both remote calls return the same paged envelope. Its ``items`` hold one of
three shapes depending on the call that produced them:

- listing items (playlist entries): ``id`` is a composite entry id and the
  real content id sits in ``snippet.resourceId.videoId``;
- detail items (statistics + content details): ``id`` is the content id;
- search items: ``id`` is itself a ``{kind, videoId}`` object.

Items are decoded by trying each shape in order; an entry that fits none of
them is skipped and counted instead of failing the whole envelope.
"""

from __future__ import annotations

import json
import logging
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from catalog_sync.services.errors import DecodingError

LOGGER = logging.getLogger("catalog_sync.models")

THUMBNAIL_PREFERENCE: tuple[str, ...] = ("maxres", "high", "standard", "medium", "default")


class CatalogWireModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
        frozen=True,
    )


class PageInfo(CatalogWireModel):
    total_results: int | None = None
    results_per_page: int | None = None


class ResourceId(CatalogWireModel):
    kind: str | None = None
    video_id: str | None = None


class Thumbnail(CatalogWireModel):
    url: str | None = None
    width: int | None = None
    height: int | None = None


class Thumbnails(CatalogWireModel):
    default: Thumbnail | None = None
    medium: Thumbnail | None = None
    high: Thumbnail | None = None
    standard: Thumbnail | None = None
    maxres: Thumbnail | None = None

    def best_url(self) -> str:
        for quality in THUMBNAIL_PREFERENCE:
            thumbnail = cast(Thumbnail | None, getattr(self, quality))
            if thumbnail is not None and thumbnail.url and thumbnail.url.strip():
                return thumbnail.url.strip()
        return ""


class Snippet(CatalogWireModel):
    published_at: str | None = None
    channel_id: str | None = None
    title: str | None = None
    description: str | None = None
    thumbnails: Thumbnails | None = None
    channel_title: str | None = None
    playlist_id: str | None = None
    position: int | None = None
    resource_id: ResourceId | None = None
    live_broadcast_content: str | None = None


class Statistics(CatalogWireModel):
    view_count: str | None = None
    like_count: str | None = None
    dislike_count: str | None = None
    favorite_count: str | None = None
    comment_count: str | None = None


class ContentDetails(CatalogWireModel):
    duration: str | None = None
    dimension: str | None = None
    definition: str | None = None
    caption: str | None = None
    licensed_content: bool | None = None
    projection: str | None = None


class SearchItem(CatalogWireModel):
    kind: str | None = None
    etag: str | None = None
    id: ResourceId
    snippet: Snippet | None = None

    @property
    def content_id(self) -> str | None:
        return _nonempty(self.id.video_id)


class ListingItem(CatalogWireModel):
    kind: str | None = None
    etag: str | None = None
    id: str | None = None
    snippet: Snippet

    @model_validator(mode="after")
    def _require_resource(self) -> ListingItem:
        if self.snippet.resource_id is None:
            raise ValueError("listing items carry snippet.resourceId")
        return self

    @property
    def content_id(self) -> str | None:
        resource = self.snippet.resource_id
        return _nonempty(resource.video_id if resource is not None else None)


class DetailItem(CatalogWireModel):
    kind: str | None = None
    etag: str | None = None
    id: str
    snippet: Snippet | None = None
    statistics: Statistics | None = None
    content_details: ContentDetails | None = None

    @model_validator(mode="after")
    def _require_details(self) -> DetailItem:
        if self.statistics is None and self.content_details is None:
            raise ValueError("detail items carry statistics or contentDetails")
        return self

    @property
    def content_id(self) -> str | None:
        return _nonempty(self.id)


CatalogItem = SearchItem | ListingItem | DetailItem
ITEM_SHAPES = (SearchItem, ListingItem, DetailItem)


def decode_item(raw_item: object) -> CatalogItem | None:
    if isinstance(raw_item, SearchItem | ListingItem | DetailItem):
        return raw_item
    if not isinstance(raw_item, dict):
        return None
    for shape in ITEM_SHAPES:
        try:
            return shape.model_validate(raw_item)
        except ValidationError:
            continue
    return None


class Envelope(CatalogWireModel):
    kind: str | None = None
    etag: str | None = None
    continuation_token: str | None = Field(default=None, alias="nextPageToken")
    prev_page_token: str | None = None
    region_code: str | None = None
    page_info: PageInfo | None = None
    items: list[CatalogItem] | None = None
    skipped_items: int = Field(default=0, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _decode_items(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        payload = dict(cast(dict[str, Any], data))
        raw_items = payload.get("items")
        if raw_items is None:
            return payload
        if not isinstance(raw_items, list):
            payload["items"] = None
            return payload

        decoded: list[CatalogItem] = []
        skipped = 0
        for raw_item in cast(list[object], raw_items):
            item = decode_item(raw_item)
            if item is None:
                skipped += 1
                continue
            decoded.append(item)
        if skipped:
            LOGGER.debug("catalog envelope skipped undecodable items count=%s", skipped)
        payload["items"] = decoded
        payload["skipped_items"] = skipped
        return payload

    @field_validator("continuation_token", mode="before")
    @classmethod
    def _normalize_token(cls, value: Any) -> str | None:
        return _nonempty(value)

    @classmethod
    def empty(cls, *, kind: str | None = None) -> Envelope:
        return cls(kind=kind, items=[])

    def content_ids(self) -> list[str]:
        ids: list[str] = []
        seen: set[str] = set()
        for item in self.items or []:
            content_id = item.content_id
            if content_id is None or content_id in seen:
                continue
            seen.add(content_id)
            ids.append(content_id)
        return ids

    def detail_by_content_id(self) -> dict[str, DetailItem]:
        details: dict[str, DetailItem] = {}
        for item in self.items or []:
            if not isinstance(item, DetailItem):
                continue
            content_id = item.content_id
            if content_id is not None and content_id not in details:
                details[content_id] = item
        return details


def parse_envelope(raw_body: bytes | str) -> Envelope:
    try:
        parsed = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodingError(f"Catalog response is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise DecodingError("Catalog response is not a JSON object.")
    try:
        return Envelope.model_validate(parsed)
    except ValidationError as exc:
        raise DecodingError(f"Catalog response has an unexpected shape: {exc}") from exc


def _nonempty(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
