from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

_METRICS = (
    ("temperature", "°C"),
    ("soilMoisture1", "%"),
    ("soilMoisture2", "%"),
    ("leafWetness", "%"),
)

_SEVERITY_COLORS = {
    "critical": typer.colors.RED,
    "warning": typer.colors.YELLOW,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Optional[float], unit: str = "") -> str:
    if value is None:
        return "-"
    return f"{value:.1f}{unit}"


def render_reading(reading: Optional[Dict[str, Any]]) -> None:
    echo_heading("Latest Reading")
    if not reading:
        typer.echo("No data available yet.")
        return
    echo_key_values(
        [
            ("timestamp", reading.get("timestamp")),
            ("temperature", _fmt(reading.get("temperature"), "°C")),
            ("humidity", _fmt(reading.get("humidity"), "%")),
            ("soilMoisture1", _fmt(reading.get("soilMoisture1"), "%")),
            ("soilMoisture2", _fmt(reading.get("soilMoisture2"), "%")),
            ("leafWetness", _fmt(reading.get("leafWetness"), "%")),
            ("stationType", reading.get("stationType")),
        ]
    )


def render_history(payload: Dict[str, Any]) -> None:
    readings = payload.get("readings") or []
    echo_heading(f"History ({payload.get('count', len(readings))} readings)")
    if not readings:
        typer.echo("No readings in range.")
        return
    for reading in readings:
        values = "  ".join(
            f"{name}={_fmt(reading.get(name), unit)}" for name, unit in _METRICS
        )
        typer.echo(f"{reading.get('timestamp')}  {values}")


def render_stats(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    stats = payload.get("stats")
    if not stats:
        typer.echo(payload.get("message") or "No data available for this period.")
        return
    time_range = stats.get("timeRange") or {}
    echo_key_values(
        [
            ("count", stats.get("count")),
            ("start", time_range.get("start")),
            ("end", time_range.get("end")),
        ]
    )
    for name, unit in _METRICS:
        metric = stats.get(name)
        typer.echo()
        echo_heading(name)
        if not metric:
            typer.echo("No values recorded.")
            continue
        echo_key_values(
            [
                ("min", _fmt(metric.get("min"), unit)),
                ("max", _fmt(metric.get("max"), unit)),
                ("avg", _fmt(metric.get("avg"), unit)),
                ("median", _fmt(metric.get("median"), unit)),
                ("count", metric.get("count")),
            ]
        )


def render_alerts(payload: Dict[str, Any]) -> None:
    alerts = payload.get("alerts") or []
    echo_heading(f"Alerts ({payload.get('alertCount', len(alerts))})")
    if payload.get("message"):
        typer.echo(payload["message"])
        return
    if not alerts:
        typer.secho("All metrics within ideal ranges.", fg=typer.colors.GREEN)
        return
    for alert in alerts:
        severity = alert.get("severity")
        typer.secho(
            f"  - [{severity}] {alert.get('message')}",
            fg=_SEVERITY_COLORS.get(severity),
        )
