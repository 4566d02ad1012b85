"""Coordinated refresh of the session credential.

At most one refresh exchange is in flight at any time. Callers arriving while
one is running wait for it and share its outcome.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import ValidationError

from portal_fetch.credentials import CredentialStore
from portal_fetch.models.auth import Credential, RefreshResponse
from portal_fetch.utils.errors import NetworkError, NoRefreshToken, RefreshRejected

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Exchanges the stored refresh token for a new credential."""

    def __init__(
        self,
        store: CredentialStore,
        http: httpx.AsyncClient,
        refresh_url: str = "/refresh",
    ) -> None:
        self._store = store
        self._http = http
        self._refresh_url = refresh_url
        self._inflight: asyncio.Task[Credential] | None = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def refresh(self) -> Credential:
        """Return a freshly refreshed credential.

        Raises:
            NoRefreshToken: No refresh token is stored.
            RefreshRejected: The endpoint answered with a non-success status.
            NetworkError: The exchange failed at the transport level.
        """
        if self._inflight is None:
            logger.info("Refreshing access token")
            self._inflight = asyncio.create_task(self._run(), name="portal-token-refresh")
            self._inflight.add_done_callback(_consume_outcome)
        else:
            logger.debug("Refresh already in flight, waiting for its outcome")
        # A cancelled waiter must not cancel the exchange other callers share.
        return await asyncio.shield(self._inflight)

    async def _run(self) -> Credential:
        try:
            return await self._exchange()
        finally:
            self._inflight = None

    async def _exchange(self) -> Credential:
        refresh_token = self._store.refresh_token()
        if not refresh_token:
            raise NoRefreshToken()

        try:
            response = await self._http.post(
                self._refresh_url,
                json={"refresh": refresh_token},
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Refresh request failed: {e}")
            raise NetworkError(f"Refresh request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"Refresh rejected (HTTP {response.status_code}), clearing session")
            self._store.clear()
            raise RefreshRejected(response.status_code, response.text)

        try:
            data = RefreshResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise NetworkError(f"Malformed refresh response: {e}") from e

        credential = Credential(
            token=data.token,
            refresh_token=data.refresh,
            expires_at=self._store.clock.now_ms() + data.expires_in * 1000,
        )
        self._store.set(credential)
        logger.info(f"Access token refreshed, valid for {data.expires_in}s")
        return credential


def _consume_outcome(task: asyncio.Task[Credential]) -> None:
    """Mark a failed exchange as retrieved even when every waiter was cancelled."""
    if not task.cancelled():
        task.exception()
