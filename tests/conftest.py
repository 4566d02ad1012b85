"""Shared fixtures for the portal-fetch test suite."""
from __future__ import annotations

from typing import Callable

import httpx
import pytest

from portal_fetch.config import Config, Endpoints, Settings
from portal_fetch.credentials import Clock, CredentialStore
from portal_fetch.models.auth import Credential
from portal_fetch.utils.storage import MemoryStore

BASE_URL = "http://portal.test"
T0 = 1_700_000_000_000  # epoch ms


class FakeClock(Clock):
    """Clock frozen at a settable instant."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def store(storage, clock) -> CredentialStore:
    return CredentialStore(storage, clock)


@pytest.fixture
def valid_credential(clock) -> Credential:
    return Credential(token="tok-valid", refresh_token="ref-1", expires_at=clock.now + 3600_000)


@pytest.fixture
def expired_credential(clock) -> Credential:
    return Credential(token="tok-old", refresh_token="ref-1", expires_at=clock.now - 1000)


@pytest.fixture
def fake_config(tmp_path) -> Config:
    return Config(
        settings=Settings(
            base_url=BASE_URL,
            credentials_path=str(tmp_path / "credentials.json"),
            timeout=5.0,
        ),
        endpoints=Endpoints(),
    )


@pytest.fixture
def make_http() -> Callable[[Callable], httpx.AsyncClient]:
    """Build an AsyncClient whose requests go to an in-process handler."""
    def factory(handler: Callable) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return factory
