"""Reactive binding between a consumer and one resource.

A binder re-fetches whenever its descriptor changes by value and publishes
Loading / Loaded / Failed states. Each fetch cycle carries a generation
number; a result whose generation is no longer current is dropped. The
underlying request is never cancelled, only its result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

from portal_fetch.client import PortalClient
from portal_fetch.models.resource import (
    Failed,
    Idle,
    Loaded,
    Loading,
    RequestDescriptor,
    ResourceState,
)
from portal_fetch.utils.errors import PortalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[ResourceState], None]


class ResourceBinder(Generic[T]):
    """Keeps a ResourceState in step with the latest RequestDescriptor."""

    def __init__(self, client: PortalClient, descriptor: RequestDescriptor | None = None) -> None:
        self._client = client
        self._state: ResourceState = Idle()
        self._descriptor: RequestDescriptor | None = None
        self._generation = 0
        self._closed = False
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._latest: asyncio.Task[None] | None = None
        if descriptor is not None:
            self.bind(descriptor)

    @property
    def state(self) -> ResourceState:
        return self._state

    @property
    def descriptor(self) -> RequestDescriptor | None:
        return self._descriptor

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def bind(self, descriptor: RequestDescriptor) -> None:
        """Point the binding at a descriptor, starting a fetch if it changed.

        Must be called from a running event loop.
        """
        if self._closed:
            raise RuntimeError("Cannot bind a closed resource binding")
        if descriptor == self._descriptor:
            return

        self._descriptor = descriptor
        self._generation += 1
        self._publish(Loading())

        task = asyncio.create_task(
            self._run(self._generation, descriptor),
            name=f"portal-resource-{self._generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._latest = task

    async def wait(self) -> ResourceState:
        """Wait for the latest fetch cycle to settle and return the current state."""
        if self._latest is not None:
            await asyncio.shield(self._latest)
        return self._state

    def close(self) -> None:
        """Tear the binding down. Results still in flight are discarded on arrival."""
        self._closed = True
        self._generation += 1
        self._listeners.clear()

    async def _run(self, generation: int, descriptor: RequestDescriptor) -> None:
        try:
            result: ResourceState = Loaded(await self._client.fetch(descriptor))
        except PortalError as e:
            result = Failed(e)
        except Exception as e:
            logger.warning(f"Unexpected failure fetching {descriptor.method} {descriptor.url}: {e!r}")
            result = Failed(e)

        if generation != self._generation:
            logger.debug(f"Dropping stale result for {descriptor.method} {descriptor.url}")
            return
        self._publish(result)

    def _publish(self, state: ResourceState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

