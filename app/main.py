from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from datastore.reading_store import build_default_store
from logging_config import configure_logging
from services.monitor import build_default_monitor
from services.poller import CloudPoller
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    monitor = build_default_monitor()
    poller: CloudPoller | None = None
    if settings.poll_enabled:
        poller = CloudPoller(monitor=monitor, settings=settings)
        poller.start()
    else:
        logger.info("Cloud polling disabled; waiting for webhook uploads only")
    app.state.poller = poller
    try:
        yield
    finally:
        if poller is not None:
            await poller.stop()
        build_default_monitor.cache_clear()
        build_default_store.cache_clear()


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    logger.info(
        "%s %s",
        request.method,
        request.url.path,
        extra={"status_code": response.status_code},
    )
    return response


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Vineyard Telemetry Monitor",
        description="Ecowitt sensor ingestion with rolling history, statistics and alerts.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(log_requests)
    app.include_router(router)
    return app

app = create_app()
