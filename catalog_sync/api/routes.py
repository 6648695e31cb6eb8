from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from catalog_sync.dependencies import get_orchestrator
from catalog_sync.models.api_contracts import (
    CatalogRecordListResponse,
    CatalogRecordResponse,
    FavoriteRequest,
    LoadMoreRequest,
    LoadMoreResponse,
    PlaybackPositionRequest,
    SyncStatusResponse,
)
from catalog_sync.services.sync_orchestrator import CatalogSyncOrchestrator, describe_error

router = APIRouter(prefix="/catalog", tags=["catalog"])

Orchestrator = Annotated[CatalogSyncOrchestrator, Depends(get_orchestrator)]


@router.get(
    "/status",
    response_model=SyncStatusResponse,
    operation_id="catalog_status",
)
async def catalog_status(orchestrator: Orchestrator) -> SyncStatusResponse:
    return SyncStatusResponse.from_snapshot(orchestrator.snapshot())


@router.post(
    "/next-page",
    response_model=SyncStatusResponse,
    operation_id="catalog_next_page",
)
async def catalog_next_page(orchestrator: Orchestrator) -> SyncStatusResponse:
    await orchestrator.fetch_next_page()
    return SyncStatusResponse.from_snapshot(orchestrator.snapshot())


@router.post(
    "/refresh",
    response_model=SyncStatusResponse,
    operation_id="catalog_refresh",
)
async def catalog_refresh(orchestrator: Orchestrator) -> SyncStatusResponse:
    await orchestrator.refresh()
    return SyncStatusResponse.from_snapshot(orchestrator.snapshot())


@router.post(
    "/load-more",
    response_model=LoadMoreResponse,
    operation_id="catalog_load_more",
)
async def catalog_load_more(
    request: LoadMoreRequest,
    orchestrator: Orchestrator,
) -> LoadMoreResponse:
    task = orchestrator.maybe_load_more(request.visible_index, request.threshold)
    return LoadMoreResponse(triggered=task is not None)


@router.get(
    "/videos",
    response_model=CatalogRecordListResponse,
    operation_id="catalog_list_videos",
)
async def catalog_list_videos(
    orchestrator: Orchestrator,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    favorites_only: bool = False,
) -> CatalogRecordListResponse:
    records = await orchestrator.list_records(
        limit=limit,
        offset=offset,
        favorites_only=favorites_only,
    )
    return CatalogRecordListResponse(
        items=[CatalogRecordResponse.from_record(record) for record in records],
        count=await orchestrator.count(),
    )


@router.get(
    "/search",
    response_model=CatalogRecordListResponse,
    operation_id="catalog_search",
)
async def catalog_search(
    orchestrator: Orchestrator,
    q: Annotated[str, Query(max_length=200)] = "",
) -> CatalogRecordListResponse:
    context_tokens = bind_contextvars(catalog_search_query_length=len(q))
    try:
        records = await orchestrator.search(q)
    except Exception as exc:
        raise HTTPException(status_code=502, detail=describe_error(exc)) from exc
    finally:
        reset_contextvars(**context_tokens)
    return CatalogRecordListResponse(
        items=[CatalogRecordResponse.from_record(record) for record in records],
        count=len(records),
    )


@router.put(
    "/videos/{content_id}/position",
    status_code=204,
    operation_id="catalog_mark_position",
)
async def catalog_mark_position(
    content_id: str,
    request: PlaybackPositionRequest,
    orchestrator: Orchestrator,
) -> Response:
    await orchestrator.mark_position(content_id, request.seconds)
    return Response(status_code=204)


@router.put(
    "/videos/{content_id}/favorite",
    response_model=CatalogRecordResponse,
    operation_id="catalog_set_favorite",
)
async def catalog_set_favorite(
    content_id: str,
    request: FavoriteRequest,
    orchestrator: Orchestrator,
) -> CatalogRecordResponse:
    record = await orchestrator.set_favorite(content_id, request.favorite)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown content id: {content_id}")
    return CatalogRecordResponse.from_record(record)


@router.post(
    "/videos/{content_id}/favorite",
    response_model=CatalogRecordResponse,
    operation_id="catalog_toggle_favorite",
)
async def catalog_toggle_favorite(
    content_id: str,
    orchestrator: Orchestrator,
) -> CatalogRecordResponse:
    record = await orchestrator.toggle_favorite(content_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Unknown content id: {content_id}")
    return CatalogRecordResponse.from_record(record)
