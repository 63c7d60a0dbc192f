"""
Ecowitt cloud poller.

Fetches the gateway's real-time snapshot from the Ecowitt cloud API on a fixed
interval and feeds the nested payload into the monitor. A failed fetch is
logged and skipped; the next tick retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from models.records import PayloadShape
from services.monitor import MonitorService
from settings import Settings

logger = logging.getLogger(__name__)

CLOUD_SOURCE = "cloud"


class CloudPoller:
    """Timer-driven pull ingestion source."""

    def __init__(
        self,
        monitor: MonitorService,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.monitor = monitor
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._task: Optional[asyncio.Task[None]] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the reusable HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.settings.poll_timeout)
            self._owns_client = True
        return self._client

    def _params(self) -> dict[str, Any]:
        return {
            "application_key": self.settings.application_key,
            "api_key": self.settings.api_key,
            "mac": self.settings.device_mac,
            "call_back": "all",
            # Celsius, so nested values need no conversion.
            "temp_unitid": 1,
        }

    async def fetch(self) -> Optional[dict[str, Any]]:
        """Return the ``data`` object of a successful response, else ``None``."""
        client = self._get_client()
        try:
            response = await client.get(
                self.settings.poll_url,
                params=self._params(),
                timeout=self.settings.poll_timeout,
            )
            response.raise_for_status()
            envelope = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Cloud API returned an error status",
                extra={"source": CLOUD_SOURCE, "status_code": exc.response.status_code},
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning(
                "Cloud API request failed",
                extra={"source": CLOUD_SOURCE, "reason": str(exc) or type(exc).__name__},
            )
            return None
        except ValueError:
            logger.warning(
                "Cloud API response is not valid JSON",
                extra={"source": CLOUD_SOURCE, "reason": "invalid json"},
            )
            return None

        if not isinstance(envelope, dict):
            logger.warning(
                "Cloud API response has no envelope",
                extra={"source": CLOUD_SOURCE, "reason": "malformed envelope"},
            )
            return None

        code = envelope.get("code")
        if code != 0:
            logger.warning(
                "Cloud API reported failure: %s",
                envelope.get("msg"),
                extra={"source": CLOUD_SOURCE, "api_code": code},
            )
            return None

        data = envelope.get("data")
        if not isinstance(data, dict):
            logger.warning(
                "Cloud API response carries no data object",
                extra={"source": CLOUD_SOURCE, "reason": "missing data"},
            )
            return None
        return data

    async def poll_once(self) -> bool:
        """Run one fetch-and-ingest cycle. Returns whether a reading was stored."""
        data = await self.fetch()
        if data is None:
            return False
        result = self.monitor.ingest(data, PayloadShape.nested, source=CLOUD_SOURCE)
        return result.stored

    async def run(self) -> None:
        await asyncio.sleep(self.settings.poll_initial_delay)
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception(
                    "Cloud poll cycle failed", extra={"source": CLOUD_SOURCE}
                )
            await asyncio.sleep(self.settings.poll_interval)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            logger.info(
                "Starting cloud poller every %.0fs", self.settings.poll_interval,
                extra={"source": CLOUD_SOURCE},
            )
            self._task = asyncio.create_task(self.run(), name="ecowitt-cloud-poller")
        return self._task

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client and self._client is not None:
            if not self._client.is_closed:
                await self._client.aclose()
            self._client = None
