"""Portal CLI — entry point.

Authenticated access to portal resources with a self-refreshing session.
"""

from __future__ import annotations

import logging

import typer

from portal_fetch.commands.auth_cmd import app as auth_app
from portal_fetch.commands.fetch_cmd import fetch

app = typer.Typer(
    name="portal",
    help="Fetch portal resources with a self-refreshing bearer session.",
    no_args_is_help=True,
)

app.add_typer(auth_app, name="auth")
app.command(name="fetch")(fetch)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Portal CLI — log in, inspect the session, and fetch resources."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


if __name__ == "__main__":
    app()
