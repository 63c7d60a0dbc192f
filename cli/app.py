from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_history, render_reading, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the vineyard telemetry monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _parse_fields(pairs: List[str]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}.")
        fields[key.strip()] = value.strip()
    return fields


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    render_reading(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    hours: Optional[float] = typer.Option(None, "--hours", min=0.01, help="Trailing window in hours."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum readings."),
) -> None:
    """List recent readings in chronological order."""
    state = _get_state(ctx)
    render_history(state.client.get_history(hours=hours, limit=limit))


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    hours: Optional[float] = typer.Option(None, "--hours", min=0.01, help="Trailing window in hours."),
) -> None:
    """Show min/max/avg/median per metric."""
    state = _get_state(ctx)
    render_stats(state.client.get_stats(hours=hours))


@app.command("alerts")
def alerts_command(ctx: typer.Context) -> None:
    """Show threshold alerts for the latest reading."""
    state = _get_state(ctx)
    render_alerts(state.client.get_alerts())


@app.command("send")
def send_command(
    ctx: typer.Context,
    fields: List[str] = typer.Argument(..., help="Gateway fields as KEY=VALUE, e.g. tempf=68."),
) -> None:
    """Push a flat gateway payload, as an Ecowitt gateway would."""
    state = _get_state(ctx)
    payload = _parse_fields(fields)
    typer.echo(f"Sending {len(payload)} fields to {state.config.base_url} ...")
    ack = state.client.send_reading(payload)
    typer.secho(f"Gateway acknowledgement: {ack}", fg=typer.colors.GREEN)
