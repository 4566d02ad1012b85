"""CLI command for authenticated resource fetches."""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console

from portal_fetch.client import PortalClient
from portal_fetch.config import get_config
from portal_fetch.models.resource import RequestDescriptor
from portal_fetch.utils.errors import PortalError, handle_error
from portal_fetch.utils.output import OutputFormat, print_output, save_payload

console = Console(stderr=True)


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


def fetch(
    url: Annotated[str, typer.Argument(help="Resource URL or path relative to PORTAL_BASE_URL")],
    method: Annotated[HttpMethod, typer.Option("--method", "-X", help="HTTP method")] = HttpMethod.GET,
    body: Annotated[Optional[str], typer.Option("--body", "-d", help="JSON request body")] = None,
    body_file: Annotated[Optional[Path], typer.Option("--body-file", help="Send a file as a raw binary body")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.JSON,
    save: Annotated[Optional[Path], typer.Option("--save", help="Write the decoded body to a file")] = None,
) -> None:
    """Fetch a resource with the stored session credential."""
    if body is not None and body_file is not None:
        console.print("[red]Use either --body or --body-file, not both.[/red]")
        raise typer.Exit(2)

    payload: Any = body_file.read_bytes() if body_file is not None else body
    descriptor = RequestDescriptor(url=url, method=method.value, body=payload)
    config = get_config()

    async def run() -> Any:
        async with PortalClient.from_config(config) as client:
            return await client.fetch(descriptor)

    try:
        data = asyncio.run(run())
    except PortalError as e:
        handle_error(e)
        raise typer.Exit(1)

    if save is not None:
        written = save_payload(data, save)
        console.print(f"Wrote {written} bytes to [bold]{save}[/bold]")
    else:
        print_output(data, output, title=f"{descriptor.method} {descriptor.url}")
