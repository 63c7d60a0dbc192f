from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Callable

import httpx
import pytest

from services.monitor import MonitorService
from services.poller import CloudPoller
from settings import get_settings

CLOUD_DATA = {
    "outdoor": {
        "temperature": {"time": "1717243170", "unit": "℃", "value": "22.46"},
        "humidity": {"time": "1717243170", "unit": "%", "value": "58"},
    },
    "soil_ch1": {"soilmoisture": {"time": "1717243170", "unit": "%", "value": "41"}},
    "leaf_ch1": {"leaf_wetness": {"time": "1717243170", "unit": "%", "value": "12"}},
}


@pytest.fixture()
def settings():
    return replace(
        get_settings(),
        poll_url="https://cloud.test/api/v3/device/real_time",
        application_key="app-key",
        api_key="api-key",
        device_mac="AA:BB:CC:DD:EE:FF",
        poll_interval=0.01,
        poll_initial_delay=0.0,
        poll_timeout=1.0,
    )


def _poller(
    monitor: MonitorService,
    settings,
    handler: Callable[[httpx.Request], httpx.Response],
) -> CloudPoller:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudPoller(monitor=monitor, settings=settings, client=client)


def _poll_once(poller: CloudPoller) -> bool:
    async def run() -> bool:
        try:
            return await poller.poll_once()
        finally:
            await poller._client.aclose()  # type: ignore[union-attr]

    return asyncio.run(run())


def test_successful_poll_ingests_nested_payload(monitor: MonitorService, settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"code": 0, "msg": "success", "data": CLOUD_DATA})

    stored = _poll_once(_poller(monitor, settings, handler))

    assert stored is True
    reading = monitor.get_latest()
    assert reading is not None
    assert reading.temperature == 22.5
    assert reading.humidity == 58.0
    assert reading.soil_moisture_1 == 41.0
    assert reading.leaf_wetness == 12.0
    assert monitor.get_debug_snapshot().last_raw.source == "cloud"  # type: ignore[union-attr]

    params = seen[0].url.params
    assert params["mac"] == "AA:BB:CC:DD:EE:FF"
    assert params["application_key"] == "app-key"
    assert params["temp_unitid"] == "1"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"code": 40010, "msg": "Illegal Application_Key", "data": []}),
        httpx.Response(503, text="unavailable"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"code": 0, "msg": "success", "data": []}),
    ],
)
def test_failed_poll_is_skipped(monitor: MonitorService, settings, response) -> None:
    stored = _poll_once(_poller(monitor, settings, lambda _request: response))

    assert stored is False
    assert monitor.total_readings == 0
    assert monitor.get_debug_snapshot().last_raw is None


def test_network_error_is_skipped(monitor: MonitorService, settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    assert _poll_once(_poller(monitor, settings, handler)) is False
    assert monitor.total_readings == 0


def test_payload_without_metrics_is_not_stored(monitor: MonitorService, settings) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 0, "msg": "success", "data": {"indoor": {}}})

    assert _poll_once(_poller(monitor, settings, handler)) is False
    assert monitor.get_debug_snapshot().last_raw is not None


def test_run_loop_survives_unexpected_errors(monitor: MonitorService, settings) -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("unexpected failure")
        if calls["count"] == 2:
            data = {"outdoor": {"temperature": {"value": 10**400}}}
            return httpx.Response(200, json={"code": 0, "msg": "success", "data": data})
        return httpx.Response(200, json={"code": 0, "msg": "success", "data": CLOUD_DATA})

    async def scenario() -> None:
        poller = _poller(monitor, settings, handler)
        poller.start()
        for _ in range(200):
            if monitor.total_readings >= 1:
                break
            await asyncio.sleep(0.01)
        await poller.stop()
        await poller._client.aclose()  # type: ignore[union-attr]

    asyncio.run(scenario())

    assert calls["count"] >= 3
    assert monitor.total_readings >= 1


def test_run_loop_keeps_polling_after_failures(monitor: MonitorService, settings) -> None:
    calls = {"count": 0}

    def handler(_request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(500)
        return httpx.Response(200, json={"code": 0, "msg": "success", "data": CLOUD_DATA})

    async def scenario() -> None:
        poller = _poller(monitor, settings, handler)
        poller.start()
        for _ in range(200):
            if monitor.total_readings >= 2:
                break
            await asyncio.sleep(0.01)
        await poller.stop()
        await poller._client.aclose()  # type: ignore[union-attr]

    asyncio.run(scenario())

    assert calls["count"] >= 3
    assert monitor.total_readings >= 2
