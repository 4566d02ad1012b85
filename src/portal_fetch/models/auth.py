"""Auth-related data models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


class Credential(BaseModel):
    """Access token, refresh token and expiry (epoch milliseconds) of one session."""
    model_config = ConfigDict(frozen=True)

    token: str
    refresh_token: str
    expires_at: int

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at / 1000, tz=timezone.utc)


class RefreshResponse(BaseModel):
    """Response from the refresh endpoint."""
    token: str
    refresh: str
    expires_in: int  # seconds until token expiration


class LoginResponse(BaseModel):
    """Response from the authorization-code exchange."""
    token: str
    refresh: str
    user: str = ""
    expires_in: int


class OAuthDetails(BaseModel):
    """Where to send the user to obtain an authorization code."""
    authorisation: str
    redirect: str
    client_id: str


class TokenStatus(BaseModel):
    """Current state of the stored credential."""
    has_token: bool
    is_expired: bool
    user: str | None = None
    expires_at: datetime | None = None
    seconds_remaining: int | None = None
