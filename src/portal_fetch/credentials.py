"""Typed access to the persisted session credential.

The store never raises: a missing or unparsable credential is simply absent,
and an absent credential counts as expired.
"""

from __future__ import annotations

import time

from portal_fetch.models.auth import Credential, TokenStatus
from portal_fetch.utils.storage import KeyValueStore

KEY_TOKEN = "token"
KEY_REFRESH = "refresh"
KEY_EXPIRY = "expiry"
KEY_USER = "user"

CREDENTIAL_KEYS = (KEY_TOKEN, KEY_REFRESH, KEY_EXPIRY)


class Clock:
    """Wall-clock time in epoch milliseconds.

    One instance is shared by everything that reads or computes an expiry.
    """

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class CredentialStore:
    """Reads and writes the (token, refresh, expiry) triple as one unit."""

    def __init__(self, storage: KeyValueStore, clock: Clock | None = None) -> None:
        self._storage = storage
        self._clock = clock or Clock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def get(self) -> Credential | None:
        token = self._storage.get(KEY_TOKEN)
        refresh = self._storage.get(KEY_REFRESH)
        expiry = self._storage.get(KEY_EXPIRY)
        if token is None or refresh is None or expiry is None:
            return None
        try:
            expires_at = int(expiry)
        except ValueError:
            return None
        return Credential(token=token, refresh_token=refresh, expires_at=expires_at)

    def set(self, credential: Credential) -> None:
        self._storage.update({
            KEY_TOKEN: credential.token,
            KEY_REFRESH: credential.refresh_token,
            KEY_EXPIRY: str(credential.expires_at),
        })

    def clear(self) -> None:
        self._storage.delete(*CREDENTIAL_KEYS)

    def refresh_token(self) -> str | None:
        """The stored refresh token, even when the rest of the credential is gone."""
        return self._storage.get(KEY_REFRESH) or None

    def is_expired(self, now: int | None = None) -> bool:
        credential = self.get()
        if credential is None:
            return True
        if now is None:
            now = self._clock.now_ms()
        return now >= credential.expires_at

    @property
    def user(self) -> str | None:
        return self._storage.get(KEY_USER)

    def set_user(self, user: str) -> None:
        self._storage.update({KEY_USER: user})

    def forget_user(self) -> None:
        self._storage.delete(KEY_USER)

    def status(self, now: int | None = None) -> TokenStatus:
        """Summarise the stored credential for display."""
        credential = self.get()
        if credential is None:
            return TokenStatus(has_token=False, is_expired=True, user=self.user)

        if now is None:
            now = self._clock.now_ms()
        is_expired = now >= credential.expires_at
        seconds_remaining = None
        if not is_expired:
            seconds_remaining = (credential.expires_at - now) // 1000

        return TokenStatus(
            has_token=True,
            is_expired=is_expired,
            user=self.user,
            expires_at=credential.expires_at_datetime,
            seconds_remaining=seconds_remaining,
        )
