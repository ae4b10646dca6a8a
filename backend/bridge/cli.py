"""Command-line utility for running and poking the display bridge.

``serve`` starts the HTTP/MQTT bridge; the other commands talk to an already
running bridge over its HTTP API.
"""
from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import List, Optional

import httpx
import typer  # type: ignore

app = typer.Typer(add_completion=False, help="Operator CLI for the display bridge")

DEFAULT_URL = "http://localhost:8000"


def _base_url(value: Optional[str]) -> str:
    if value and value.strip():
        return value.strip().rstrip("/")
    env_value = os.getenv("BRIDGE_URL")
    if env_value and env_value.strip():
        return env_value.strip().rstrip("/")
    return DEFAULT_URL


def _parse_pairs(pairs: List[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        params[key] = value
    return params


def _request(method: str, url: str, timeout: float, **kwargs: object) -> httpx.Response:
    try:
        response = httpx.request(method, url, timeout=timeout, **kwargs)  # type: ignore[arg-type]
    except httpx.HTTPError as exc:
        typer.secho(f"Bridge unreachable at {url}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc
    if response.status_code >= 400:
        typer.secho(f"HTTP {response.status_code}: {response.text}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return response


def _print_json(response: httpx.Response) -> None:
    typer.echo(json.dumps(response.json(), indent=2, sort_keys=True))


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, help="HTTP port (defaults to configured port)."),
    log_level: str = typer.Option("info", help="Uvicorn log level."),
) -> None:
    """Run the bridge (HTTP API plus MQTT front-end when enabled)."""

    from .server import run

    run(host=host, port=port, log_level=log_level)


@app.command()
def status(
    url: Optional[str] = typer.Option(None, help="Bridge base URL (env BRIDGE_URL)."),
    timeout: float = typer.Option(10.0, help="Request timeout in seconds."),
) -> None:
    """Print the bridge's current status snapshot."""

    _print_json(_request("GET", f"{_base_url(url)}/api/status", timeout))


@app.command()
def send(
    command: str = typer.Argument(..., help="Command name, e.g. score or clock."),
    pairs: Optional[List[str]] = typer.Argument(None, help="Settings as key=value pairs."),
    url: Optional[str] = typer.Option(None, help="Bridge base URL (env BRIDGE_URL)."),
    timeout: float = typer.Option(30.0, help="Request timeout in seconds."),
) -> None:
    """Send a command through the HTTP API and print the resulting status."""

    params = _parse_pairs(pairs or [])
    response = _request("GET", f"{_base_url(url)}/api/{command}", timeout, params=params)
    _print_json(response)


@app.command()
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    url: Optional[str] = typer.Option(None, help="Bridge base URL (env BRIDGE_URL)."),
    timeout: float = typer.Option(30.0, help="Request timeout in seconds."),
) -> None:
    """Upload an image and print the path to pass to setImg."""

    with path.open("rb") as handle:
        response = _request(
            "POST",
            f"{_base_url(url)}/api/upload",
            timeout,
            files={"file": (path.name, handle)},
        )
    typer.echo(response.text)


def main(argv: Optional[list[str]] = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    try:
        rc = app(prog_name="display-bridge", args=args, standalone_mode=False)
    except typer.Exit as exc:
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - safety net
        typer.secho(f"Unexpected error: {exc}", fg=typer.colors.RED)
        return 1
    # Without standalone mode click returns the exit code instead of raising it.
    return rc if isinstance(rc, int) else 0


def run() -> None:
    """Entry point for console_scripts."""

    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - manual execution
    run()
