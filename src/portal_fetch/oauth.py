"""OAuth authorization-code login that first populates the credential store."""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from portal_fetch.credentials import CredentialStore
from portal_fetch.models.auth import Credential, LoginResponse, OAuthDetails
from portal_fetch.utils.errors import DecodeError, HttpError, NetworkError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class OAuthClient:
    """Talks to the portal's /oauth endpoint."""

    def __init__(self, store: CredentialStore, http: httpx.AsyncClient, oauth_url: str = "/oauth") -> None:
        self._store = store
        self._http = http
        self._oauth_url = oauth_url

    async def details(self) -> OAuthDetails:
        """Fetch the authorisation endpoint, redirect URI and client id."""
        response = await self._request("GET", self._oauth_url)
        return _parse(OAuthDetails, response)

    @staticmethod
    def authorization_url(details: OAuthDetails) -> str:
        """Build the URL the user visits to obtain an authorization code."""
        url = httpx.URL(details.authorisation)
        return str(url.copy_merge_params({
            "response_type": "code",
            "client_id": details.client_id,
            "redirect_uri": details.redirect,
        }))

    async def exchange_code(self, code: str) -> Credential:
        """Exchange an authorization code and persist the resulting session."""
        response = await self._request("POST", self._oauth_url, json={"code": code})
        data = _parse(LoginResponse, response)

        credential = Credential(
            token=data.token,
            refresh_token=data.refresh,
            expires_at=self._store.clock.now_ms() + data.expires_in * 1000,
        )
        self._store.set(credential)
        if data.user:
            self._store.set_user(data.user)
        logger.info(f"Logged in as {data.user or 'unknown user'}")
        return credential

    def logout(self) -> None:
        self._store.clear()
        self._store.forget_user()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e
        if not response.is_success:
            raise HttpError(response.status_code, response.text)
        return response


def _parse(model: type[M], response: httpx.Response) -> M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise DecodeError(f"Malformed response from {response.request.url}: {e}") from e
