"""CLI commands for session management."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from portal_fetch.client import PortalClient
from portal_fetch.config import get_config
from portal_fetch.oauth import OAuthClient
from portal_fetch.utils.errors import PortalError, handle_error
from portal_fetch.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="auth", help="Manage the portal session.")

OutputOption = Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")]


def _status_row(client: PortalClient) -> dict[str, object]:
    status = client.store.status()
    return {
        "user": status.user or "N/A",
        "has_token": status.has_token,
        "is_expired": status.is_expired,
        "expires_at": str(status.expires_at) if status.expires_at else "N/A",
        "seconds_remaining": status.seconds_remaining or 0,
    }


@app.command()
def url() -> None:
    """Print the URL to visit for an authorization code."""
    config = get_config()

    async def run() -> str:
        async with PortalClient.from_config(config) as client:
            oauth = OAuthClient(client.store, client.http, config.endpoints.oauth)
            return OAuthClient.authorization_url(await oauth.details())

    try:
        typer.echo(asyncio.run(run()))
    except PortalError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def login(
    code: Annotated[str, typer.Option("--code", "-c", help="Authorization code from the redirect")],
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """Exchange an authorization code for a session."""
    config = get_config()

    async def run() -> dict[str, object]:
        async with PortalClient.from_config(config) as client:
            oauth = OAuthClient(client.store, client.http, config.endpoints.oauth)
            await oauth.exchange_code(code)
            return {"status": "authenticated", **_status_row(client)}

    try:
        console.print("Exchanging authorization code...", style="yellow")
        print_output(asyncio.run(run()), output, title="Authentication")
    except PortalError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def status(output: OutputOption = OutputFormat.TABLE) -> None:
    """Show the stored session status."""
    config = get_config()
    client = PortalClient.from_config(config)
    try:
        print_output(_status_row(client), output, title="Session Status")
    finally:
        asyncio.run(client.aclose())


@app.command()
def refresh(output: OutputOption = OutputFormat.TABLE) -> None:
    """Force a refresh of the access token."""
    config = get_config()

    async def run() -> dict[str, object]:
        async with PortalClient.from_config(config) as client:
            await client.refresher.refresh()
            return {"status": "refreshed", **_status_row(client)}

    try:
        console.print("Refreshing access token...", style="yellow")
        print_output(asyncio.run(run()), output, title="Token Refreshed")
    except PortalError as e:
        handle_error(e)
        raise typer.Exit(1)


@app.command()
def logout() -> None:
    """Forget the stored session."""
    config = get_config()
    client = PortalClient.from_config(config)
    try:
        OAuthClient(client.store, client.http, config.endpoints.oauth).logout()
    finally:
        asyncio.run(client.aclose())
    console.print("Logged out.", style="green")
