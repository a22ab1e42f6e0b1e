"""Data client commands."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from runtime_core.cli.utils import parse_key_values, print_api_error
from runtime_core.data_client.client import DataClient, close_data_client
from runtime_core.data_client.errors import ApiError
from runtime_core.services.registry import get_service_registry

app = typer.Typer(help="Requests through the data client")
console = Console()

PARAM_OPTION = typer.Option(
    None,
    "--param",
    "-p",
    help="Query parameter as key=value (repeatable)",
    metavar="<key=value>",
)  # fmt: skip
HEADER_OPTION = typer.Option(
    None,
    "--header",
    "-H",
    help="Extra request header as name=value (repeatable)",
    metavar="<name=value>",
)  # fmt: skip


def _client() -> DataClient:
    return get_service_registry().get(DataClient)


def _print_payload(payload: Any) -> None:
    if isinstance(payload, bytes):
        console.print(f"[dim]<{len(payload)} bytes>[/dim]")
    elif isinstance(payload, str):
        console.print(payload)
    else:
        console.print_json(json.dumps(payload, default=str))


async def _run(client: DataClient, operation: Callable[[DataClient], Awaitable[Any]]) -> Any:
    try:
        return await operation(client)
    finally:
        await client.aclose()
        # The process-wide client is bound to this event loop; drop it with the loop
        await close_data_client()


@app.command()
def get(
    endpoint: str = typer.Argument(..., help="Endpoint path or absolute URL"),
    param: list[str] | None = PARAM_OPTION,
    header: list[str] | None = HEADER_OPTION,
):
    """Perform a GET request and print the response body.

    Examples:
        runtime-core api get /v1/articles -p section=sports
        runtime-core api get https://example.com/feed.json
    """
    params = parse_key_values(param, "parameter")
    headers = parse_key_values(header, "header")
    try:
        payload = asyncio.run(_run(_client(), lambda client: client.get(endpoint, params=params, headers=headers)))
    except ApiError as e:
        print_api_error(e)
        raise typer.Exit(1) from None
    _print_payload(payload)


@app.command()
def call(
    name: str = typer.Argument(..., help="Endpoint name from the configuration"),
    param: list[str] | None = PARAM_OPTION,
):
    """Call a named endpoint from the configuration.

    Examples:
        runtime-core api call trending
    """
    params = parse_key_values(param, "parameter")
    try:
        payload = asyncio.run(_run(_client(), lambda client: client.call_endpoint(name, params=params)))
    except ApiError as e:
        print_api_error(e)
        raise typer.Exit(1) from None
    _print_payload(payload)


@app.command()
def endpoints():
    """List the named endpoints of the configuration.

    Examples:
        runtime-core api endpoints
    """
    client = _client()
    if not client.config.endpoints:
        console.print("[yellow]No endpoints configured[/yellow]")
        return

    table = Table(title=f"Endpoints ({client.config.base_url or 'no base URL'})")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    for name, path in sorted(client.config.endpoints.items()):
        table.add_row(name, path)
    console.print(table)
