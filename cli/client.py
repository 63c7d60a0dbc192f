from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the monitoring service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_latest(self) -> Optional[Dict[str, Any]]:
        """Latest reading payload, or ``None`` when the service has no data."""
        try:
            response = self._client.get("/api/data/latest")
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json().get("reading")

    def get_history(
        self, hours: Optional[float] = None, limit: Optional[int] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if hours is not None:
            params["hours"] = hours
        if limit is not None:
            params["limit"] = limit
        return self._get_json("/api/data/history", params)

    def get_stats(self, hours: Optional[float] = None) -> Dict[str, Any]:
        params = {"hours": hours} if hours is not None else {}
        return self._get_json("/api/data/stats", params)

    def get_alerts(self) -> Dict[str, Any]:
        return self._get_json("/api/alerts")

    def send_reading(self, fields: Mapping[str, str]) -> str:
        """Post a flat gateway payload the way an Ecowitt gateway does."""
        try:
            response = self._client.post("/api/ecowitt", data=dict(fields))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.text

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail") or data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
