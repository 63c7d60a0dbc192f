"""HTTP route definitions for the service."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import FormData
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.schemas import (
    AlertOut,
    AlertsResponse,
    DebugResponse,
    HistoryResponse,
    LatestResponse,
    NoDataResponse,
    RawPayloadOut,
    ReadingOut,
    ServiceStatus,
    StatsOut,
    StatsResponse,
)
from models.records import PayloadShape
from services.monitor import MonitorService, build_default_monitor

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "Ecowitt Vineyard Monitoring API"
WEBHOOK_ACK = "success"

ENDPOINTS = {
    "health": "GET /",
    "ecowittWebhook": "POST /api/ecowitt",
    "wundergroundWebhook": "GET /weatherstation/updateweatherstation.php",
    "latestData": "GET /api/data/latest",
    "history": "GET /api/data/history",
    "stats": "GET /api/data/stats",
    "alerts": "GET /api/alerts",
    "debug": "GET /api/debug",
}


def get_monitor() -> MonitorService:
    return build_default_monitor()


def _flatten_form(form: FormData) -> Dict[str, Any]:
    return {key: value for key, value in form.items() if isinstance(value, str)}


async def _read_flat_payload(request: Request) -> Dict[str, Any]:
    """Collect a gateway payload from the query string or the request body."""
    if request.method == "GET":
        return dict(request.query_params)

    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            body = await request.json()
            if isinstance(body, dict):
                return body
            logger.warning(
                "Ignoring non-object JSON body",
                extra={"path": request.url.path, "reason": type(body).__name__},
            )
            return {}
        return _flatten_form(await request.form())
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError, MultiPartException) as exc:
        reason = str(exc)
    except StarletteHTTPException as exc:
        reason = exc.detail
    logger.warning(
        "Unreadable webhook body",
        extra={"path": request.url.path, "reason": reason},
    )
    return {}


async def _acknowledge(request: Request, monitor: MonitorService) -> PlainTextResponse:
    payload = await _read_flat_payload(request)
    monitor.ingest(payload, PayloadShape.flat, source=request.url.path)
    # Gateways retry on anything but success, so the ack never reveals whether
    # a reading was stored.
    return PlainTextResponse(WEBHOOK_ACK, status_code=status.HTTP_200_OK)


@router.api_route(
    "/api/ecowitt",
    methods=["GET", "POST"],
    response_class=PlainTextResponse,
    summary="Ecowitt / Wunderground gateway webhook.",
)
async def ecowitt_webhook(
    request: Request,
    monitor: MonitorService = Depends(get_monitor),
) -> PlainTextResponse:
    return await _acknowledge(request, monitor)


@router.api_route(
    "/weatherstation/updateweatherstation.php",
    methods=["GET", "POST"],
    response_class=PlainTextResponse,
    summary="Wunderground-protocol upload endpoint.",
)
async def wunderground_webhook(
    request: Request,
    monitor: MonitorService = Depends(get_monitor),
) -> PlainTextResponse:
    return await _acknowledge(request, monitor)


@router.get(
    "/api/data/latest",
    response_model=LatestResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": NoDataResponse}},
    summary="Most recent stored reading.",
)
async def latest_reading(
    monitor: MonitorService = Depends(get_monitor),
) -> Union[LatestResponse, JSONResponse]:
    reading = monitor.get_latest()
    if reading is None:
        body = NoDataResponse(
            message="No data available yet. Waiting for first sensor reading."
        )
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())
    return LatestResponse(reading=ReadingOut.from_reading(reading))


@router.get(
    "/api/data/history",
    response_model=HistoryResponse,
    summary="Recent readings in chronological order.",
)
async def reading_history(
    hours: Optional[float] = Query(None, gt=0, description="Trailing window in hours."),
    limit: Optional[int] = Query(None, ge=1, description="Maximum readings returned."),
    monitor: MonitorService = Depends(get_monitor),
) -> HistoryResponse:
    readings = monitor.get_history(hours=hours, limit=limit)
    return HistoryResponse(
        count=len(readings),
        readings=[ReadingOut.from_reading(reading) for reading in readings],
    )


@router.get(
    "/api/data/stats",
    response_model=StatsResponse,
    summary="Per-metric statistics over a trailing window.",
)
async def reading_stats(
    hours: Optional[float] = Query(None, gt=0, description="Trailing window in hours."),
    monitor: MonitorService = Depends(get_monitor),
) -> StatsResponse:
    summary = monitor.get_stats(hours=hours)
    if summary is None:
        return StatsResponse(message="No data available for this period", stats=None)
    return StatsResponse(stats=StatsOut.from_summary(summary))


@router.get(
    "/api/alerts",
    response_model=AlertsResponse,
    summary="Threshold alerts for the latest reading.",
)
async def current_alerts(
    monitor: MonitorService = Depends(get_monitor),
) -> AlertsResponse:
    report = monitor.get_alerts()
    if report is None:
        return AlertsResponse(alert_count=0, alerts=[], message="No data available yet")
    return AlertsResponse(
        alert_count=len(report.alerts),
        alerts=[AlertOut.from_alert(alert) for alert in report.alerts],
        timestamp=report.timestamp,
    )


@router.get(
    "/api/debug",
    response_model=DebugResponse,
    summary="Last raw payload and store size for diagnostics.",
)
async def debug_snapshot(
    monitor: MonitorService = Depends(get_monitor),
) -> DebugResponse:
    snapshot = monitor.get_debug_snapshot()
    latest = ReadingOut.from_reading(snapshot.latest) if snapshot.latest else None
    return DebugResponse(
        last_raw_data=RawPayloadOut.from_record(snapshot.last_raw),
        total_readings=snapshot.total_readings,
        latest_parsed=latest,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    response_model=ServiceStatus,
    summary="Service status with store size and endpoint map.",
    status_code=status.HTTP_200_OK,
)
async def root(monitor: MonitorService = Depends(get_monitor)) -> ServiceStatus:
    return ServiceStatus(
        service=SERVICE_NAME,
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        total_readings=monitor.total_readings,
        last_update=monitor.last_update,
        endpoints=ENDPOINTS,
    )
