"""Error taxonomy for the fetch pipeline and structured CLI error output."""

from __future__ import annotations

import json
import sys

from rich.console import Console

console = Console(stderr=True)


class PortalError(Exception):
    """Base class for every failure the fetch pipeline surfaces."""

    code = "RUNTIME_ERROR"


class AuthError(PortalError):
    """The session credential could not be made valid."""

    code = "AUTH_ERROR"


class NoRefreshToken(AuthError):
    """No refresh token is stored; the user has to log in again."""

    code = "NO_REFRESH_TOKEN"

    def __init__(self, message: str = "No refresh token available, please log in again.") -> None:
        super().__init__(message)


class RefreshRejected(AuthError):
    """The refresh endpoint refused the stored refresh token."""

    code = "REFRESH_REJECTED"

    def __init__(self, status: int, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        message = f"Refresh token rejected (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NetworkError(AuthError):
    """Transport failure. Stored credentials are left untouched."""

    code = "NETWORK_ERROR"


class HttpError(PortalError):
    """A resource request finished with a non-success status."""

    code = "HTTP_ERROR"

    def __init__(self, status: int, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        message = f"HTTP {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class DecodeError(PortalError):
    """A response body did not match its declared content type."""

    code = "DECODE_ERROR"


class InvalidRequest(PortalError):
    """A request descriptor that cannot be turned into an HTTP request."""

    code = "INVALID_REQUEST"


_HINTS: dict[str, str] = {
    "NO_REFRESH_TOKEN": "Session missing — run `portal auth login --code <code>`",
    "REFRESH_REJECTED": "Session expired or revoked — run `portal auth login --code <code>`",
    "NETWORK_ERROR": "Connection error — check network connectivity and PORTAL_BASE_URL",
    "DECODE_ERROR": "The server sent a body that does not match its Content-Type",
    "INVALID_REQUEST": "Check the URL and method of the request",
}


def _get_hint(error: Exception) -> str | None:
    """Match an error to an actionable hint."""
    if isinstance(error, HttpError):
        if error.status == 401:
            return "Token rejected twice — run `portal auth refresh` or log in again"
        if error.status == 404:
            return "The resource does not exist — verify the URL"
        return None
    return _HINTS.get(getattr(error, "code", ""))


def handle_error(error: Exception) -> None:
    """Handle an error with structured output to stdout and human-readable output to stderr.

    Outputs a JSON error object to stdout for scripted consumers:
    {"error": true, "code": "HTTP_ERROR", "message": "...", "hint": "...", "status": 404}
    """
    message = str(error)
    hint = _get_hint(error)
    code = error.code if isinstance(error, PortalError) else "RUNTIME_ERROR"

    error_obj: dict[str, object] = {
        "error": True,
        "code": code,
        "message": message,
    }
    status = getattr(error, "status", None)
    if status is not None:
        error_obj["status"] = status
    if hint:
        error_obj["hint"] = hint

    json.dump(error_obj, sys.stdout)
    sys.stdout.write("\n")

    console.print(f"[red]Error:[/red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
