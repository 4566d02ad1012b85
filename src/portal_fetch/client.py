"""Authenticated HTTP client for portal resources.

Ensures a valid bearer token before sending, attaches it, and retries exactly
once after a 401 with a freshly refreshed token.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from portal_fetch.auth import RefreshCoordinator
from portal_fetch.config import Config
from portal_fetch.credentials import Clock, CredentialStore
from portal_fetch.models.resource import RequestDescriptor
from portal_fetch.utils.errors import DecodeError, HttpError, InvalidRequest, NetworkError
from portal_fetch.utils.storage import JsonFileStore

logger = logging.getLogger(__name__)


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body according to its declared Content-Type.

    application/json -> parsed structure, text/plain -> str, anything else -> bytes.
    """
    content_type = response.headers.get("Content-Type", "").lower()
    if content_type.startswith("application/json"):
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON body from {response.request.url}: {e}") from e
    if content_type.startswith("text/plain"):
        return response.text
    return response.content


class PortalClient:
    """Sends RequestDescriptors with the session's bearer credential."""

    def __init__(
        self,
        store: CredentialStore,
        refresher: RefreshCoordinator,
        http: httpx.AsyncClient,
    ) -> None:
        self._store = store
        self._refresher = refresher
        self._http = http

    @classmethod
    def from_config(cls, config: Config, clock: Clock | None = None) -> PortalClient:
        """Build a client persisting its session to the configured credentials file."""
        store = CredentialStore(JsonFileStore(config.credentials_file), clock)
        http = httpx.AsyncClient(base_url=config.settings.base_url, timeout=config.settings.timeout)
        refresher = RefreshCoordinator(store, http, config.endpoints.refresh)
        return cls(store, refresher, http)

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def refresher(self) -> RefreshCoordinator:
        return self._refresher

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def send(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send an authenticated request and return the raw response.

        Raises:
            AuthError: The credential could not be refreshed.
            HttpError: The final response status is 400 or above.
        """
        if self._store.is_expired():
            await self._refresher.refresh()

        response = await self._send_once(descriptor)

        if response.status_code == 401:
            logger.warning(f"Got 401 for {descriptor.method} {descriptor.url}, refreshing token and retrying once")
            await response.aclose()
            await self._refresher.refresh()
            response = await self._send_once(descriptor)

        if response.status_code >= 400:
            await response.aread()
            raise HttpError(response.status_code, _error_detail(response))

        return response

    async def fetch(self, descriptor: RequestDescriptor) -> Any:
        """Send a request and decode its body by content type."""
        response = await self.send(descriptor)
        return decode_body(response)

    async def get(self, url: str, **kwargs: Any) -> Any:
        """Convenience method for GET requests."""
        return await self.fetch(RequestDescriptor(url=url, method="GET", **kwargs))

    async def post(self, url: str, **kwargs: Any) -> Any:
        """Convenience method for POST requests."""
        return await self.fetch(RequestDescriptor(url=url, method="POST", **kwargs))

    async def put(self, url: str, **kwargs: Any) -> Any:
        """Convenience method for PUT requests."""
        return await self.fetch(RequestDescriptor(url=url, method="PUT", **kwargs))

    async def delete(self, url: str, **kwargs: Any) -> Any:
        """Convenience method for DELETE requests."""
        return await self.fetch(RequestDescriptor(url=url, method="DELETE", **kwargs))

    async def _send_once(self, descriptor: RequestDescriptor) -> httpx.Response:
        logger.debug(f"{descriptor.method} {descriptor.url}")
        try:
            return await self._http.request(
                descriptor.method,
                descriptor.url,
                headers=self._build_headers(descriptor),
                content=_encode_body(descriptor.body),
            )
        except httpx.InvalidURL as e:
            raise InvalidRequest(f"Invalid URL {descriptor.url!r}: {e}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{descriptor.method} {descriptor.url} failed: {e}") from e

    def _build_headers(self, descriptor: RequestDescriptor) -> httpx.Headers:
        """Build request headers with the current bearer token."""
        credential = self._store.get()
        token = credential.token if credential else ""

        headers = httpx.Headers(descriptor.headers or {})
        headers["Authorization"] = f"Bearer {token}"
        headers["Accept"] = "application/json"
        if descriptor.is_json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> PortalClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _encode_body(body: Any) -> bytes | str | None:
    if body is None or isinstance(body, (bytes, str)):
        return body
    return json.dumps(body)


def _error_detail(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or response.text)
    return response.text
