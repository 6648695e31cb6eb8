from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from catalog_sync.api.routes import router
from catalog_sync.dependencies import get_orchestrator, get_settings, get_telemetry
from catalog_sync.logging_config import configure_application_logging

LOGGER = logging.getLogger("catalog_sync.main")


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_application_logging(settings)
    orchestrator = get_orchestrator()
    LOGGER.info(
        "catalog sync api started db_path=%s load_more_threshold=%s",
        settings.db_path,
        settings.load_more_threshold,
    )
    try:
        yield
    finally:
        await orchestrator.aclose()


def create_app() -> FastAPI:
    app = FastAPI(title="Catalog Sync API", version="0.1.0", lifespan=app_lifespan)

    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        telemetry = get_telemetry()
        incoming_request_id = request.headers.get("X-Request-ID")
        request_id = (
            incoming_request_id.strip()
            if isinstance(incoming_request_id, str) and incoming_request_id.strip()
            else str(uuid4())
        )
        context_tokens = bind_contextvars(
            http_request_id=request_id,
            http_method=request.method,
            http_path=request.url.path,
        )
        started_at = perf_counter()
        telemetry.http_request_started(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            telemetry.http_request_failed(
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                started_at=started_at,
                error=exc,
            )
            raise
        else:
            response.headers["X-Request-ID"] = request_id
            telemetry.http_request_finished(
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                started_at=started_at,
                status_code=response.status_code,
            )
            return response
        finally:
            reset_contextvars(**context_tokens)

    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )

    return app


app = create_app()
