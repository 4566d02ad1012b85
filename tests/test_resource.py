"""Tests for resource.py — state transitions, re-fetch on change, stale-result suppression."""
import asyncio

import httpx
import pytest

from portal_fetch.auth import RefreshCoordinator
from portal_fetch.client import PortalClient
from portal_fetch.models.resource import Failed, Idle, Loaded, Loading, RequestDescriptor
from portal_fetch.resource import ResourceBinder
from portal_fetch.utils.errors import HttpError, InvalidRequest, NoRefreshToken


class ScriptedClient:
    """Stands in for PortalClient; each URL resolves when its future is completed."""

    def __init__(self):
        self.pending: dict[str, asyncio.Future] = {}
        self.calls: list[RequestDescriptor] = []

    def future_for(self, url):
        if url not in self.pending:
            self.pending[url] = asyncio.get_running_loop().create_future()
        return self.pending[url]

    async def fetch(self, descriptor):
        self.calls.append(descriptor)
        return await self.future_for(descriptor.url)


D1 = RequestDescriptor(url="/databases?page=1")
D2 = RequestDescriptor(url="/databases?page=2")


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


# ── Transitions ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_starts_idle():
    binder = ResourceBinder(ScriptedClient())
    assert isinstance(binder.state, Idle)


@pytest.mark.asyncio
async def test_loading_then_loaded():
    client = ScriptedClient()
    seen = []
    binder = ResourceBinder(client)
    binder.subscribe(seen.append)

    binder.bind(D1)
    assert isinstance(binder.state, Loading)

    client.future_for(D1.url).set_result({"databases": []})
    state = await binder.wait()

    assert state == Loaded({"databases": []})
    assert seen == [Loading(), Loaded({"databases": []})]


@pytest.mark.asyncio
async def test_failure_is_published_not_swallowed():
    client = ScriptedClient()
    binder = ResourceBinder(client, D1)
    error = HttpError(404, "missing")

    client.future_for(D1.url).set_exception(error)
    state = await binder.wait()

    assert isinstance(state, Failed)
    assert state.error is error


@pytest.mark.asyncio
async def test_equal_descriptor_does_not_refetch():
    client = ScriptedClient()
    binder = ResourceBinder(client, D1)
    binder.bind(RequestDescriptor(url="/databases?page=1"))
    await _settle()
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_changed_descriptor_refetches():
    client = ScriptedClient()
    binder = ResourceBinder(client, D1)
    client.future_for(D1.url).set_result("one")
    await binder.wait()

    binder.bind(D2)
    assert isinstance(binder.state, Loading)
    client.future_for(D2.url).set_result("two")

    assert await binder.wait() == Loaded("two")
    assert [d.url for d in client.calls] == [D1.url, D2.url]


# ── Stale-result suppression ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_superseded_result_resolving_late_is_dropped():
    client = ScriptedClient()
    seen = []
    binder = ResourceBinder(client)
    binder.subscribe(seen.append)

    binder.bind(D1)
    await _settle()
    binder.bind(D2)
    await _settle()

    client.future_for(D2.url).set_result("second")
    await _settle()
    client.future_for(D1.url).set_result("first")
    await _settle()

    assert binder.state == Loaded("second")
    assert Loaded("first") not in seen


@pytest.mark.asyncio
async def test_superseded_result_resolving_early_is_dropped():
    client = ScriptedClient()
    binder = ResourceBinder(client, D1)
    await _settle()
    binder.bind(D2)

    client.future_for(D1.url).set_result("first")
    await _settle()
    assert isinstance(binder.state, Loading)

    client.future_for(D2.url).set_result("second")
    assert await binder.wait() == Loaded("second")


@pytest.mark.asyncio
async def test_close_discards_in_flight_result():
    client = ScriptedClient()
    seen = []
    binder = ResourceBinder(client)
    binder.subscribe(seen.append)
    binder.bind(D1)
    await _settle()

    binder.close()
    client.future_for(D1.url).set_result("late")
    await _settle()

    assert binder.closed is True
    assert isinstance(binder.state, Loading)
    assert seen == [Loading()]
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_bind_after_close_raises():
    binder = ResourceBinder(ScriptedClient())
    binder.close()
    with pytest.raises(RuntimeError, match="closed"):
        binder.bind(D1)


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications():
    client = ScriptedClient()
    seen = []
    binder = ResourceBinder(client)
    unsubscribe = binder.subscribe(seen.append)
    binder.bind(D1)
    unsubscribe()

    client.future_for(D1.url).set_result("x")
    await binder.wait()
    assert seen == [Loading()]


# ── End to end with the real client ──────────────────────────────────

@pytest.mark.asyncio
async def test_binder_with_portal_client(store, valid_credential, make_http):
    store.set(valid_credential)

    async def handler(request):
        return httpx.Response(200, text="hello", headers={"Content-Type": "text/plain"})

    http = make_http(handler)
    binder = ResourceBinder(PortalClient(store, RefreshCoordinator(store, http), http), D1)
    assert await binder.wait() == Loaded("hello")


@pytest.mark.asyncio
async def test_binder_surfaces_auth_error(store, make_http):
    async def handler(request):
        raise AssertionError("no request expected")

    http = make_http(handler)
    binder = ResourceBinder(PortalClient(store, RefreshCoordinator(store, http), http), D1)
    state = await binder.wait()
    assert isinstance(state, Failed)
    assert isinstance(state.error, NoRefreshToken)


# ── Unexpected failures ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_invalid_url_is_published_as_failed(store, valid_credential, make_http):
    store.set(valid_credential)

    async def handler(request):
        raise AssertionError("no request expected")

    http = make_http(handler)
    seen = []
    binder = ResourceBinder(PortalClient(store, RefreshCoordinator(store, http), http))
    binder.subscribe(seen.append)

    binder.bind(RequestDescriptor(url="http://[::1"))
    state = await binder.wait()

    assert isinstance(state, Failed)
    assert isinstance(state.error, InvalidRequest)
    assert seen == [Loading(), state]


@pytest.mark.asyncio
async def test_non_portal_exception_is_published_as_failed():
    client = ScriptedClient()
    binder = ResourceBinder(client, D1)
    error = RuntimeError("boom")

    client.future_for(D1.url).set_exception(error)
    state = await binder.wait()

    assert isinstance(state, Failed)
    assert state.error is error
