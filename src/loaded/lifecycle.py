"""
Lifecycle notifications: ``ready``, ``used_by`` and ``teardown`` hooks.

Each component moves from not-ready to ready exactly once. ``used_by``
notifications aimed at a component that is not ready yet are queued and
delivered, in arrival order, right before the component becomes ready.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .graph import LoaderError
from .introspection import Capability, ComponentManifest

logger = logging.getLogger(__name__)


class HookFailure(LoaderError):
    """Raised when a component's lifecycle hook fails."""

    def __init__(self, name: str, hook: Capability, cause: BaseException):
        self.name = name
        self.hook = hook
        super().__init__(f"{hook.value} hook of '{name}' failed: {cause!r}")


@dataclass(frozen=True)
class LoadEvent:
    """
    Argument passed to ``ready`` and ``used_by`` hooks.

    Attributes:
        name: Name of the component receiving the hook
        loaded: Read-only view of the components that are ready so far
        by_name: For ``used_by``, the name of the dependent that became ready
        by: For ``used_by``, the dependent component itself
    """

    name: str
    loaded: Mapping[str, Any]
    by_name: str | None = None
    by: Any = None


async def invoke_hook(name: str, capability: Capability, hook: Callable[..., Any], *args: Any) -> Any:
    """
    Call a hook, awaiting its result if it is awaitable.

    Before awaiting, control is handed back once so that a synchronous
    ``load`` outside of an event loop can defer the wait to its caller.
    """
    try:
        result = hook(*args)
        if inspect.isawaitable(result):
            await asyncio.sleep(0)
            result = await result
    except Exception as e:
        raise HookFailure(name, capability, e) from e
    return result


class LifecycleNotifier:
    """Tracks readiness of components and delivers lifecycle hooks in order."""

    def __init__(self, manifest_of: Callable[[str], ComponentManifest]) -> None:
        super().__init__()
        self._manifest_of = manifest_of
        self._ready: dict[str, Any] = {}
        self._failed: dict[str, HookFailure] = {}
        self._queues: dict[str, deque[LoadEvent]] = {}
        self._notified: set[tuple[str, str]] = set()
        self._ready_futures: dict[str, asyncio.Future[Any]] = {}
        self._waiters: dict[str, list[asyncio.Future[Any]]] = {}

    @property
    def loaded(self) -> Mapping[str, Any]:
        """Live read-only view of ready components."""
        return MappingProxyType(self._ready)

    def is_ready(self, name: str) -> bool:
        return name in self._ready

    def failure(self, name: str) -> HookFailure | None:
        return self._failed.get(name)

    def queued(self, name: str) -> list[LoadEvent]:
        """Notifications waiting for ``name`` to become ready."""
        return list(self._queues.get(name, ()))

    async def run_ready(self, name: str, component: Any) -> None:
        """Run the ``ready`` hook of a component and make it ready."""
        manifest = self._manifest_of(name)
        try:
            hook = manifest.hook(Capability.READY)
            if hook is not None:
                await invoke_hook(name, Capability.READY, hook, LoadEvent(name, self.loaded))

            # Queued notifications come first; new ones arriving meanwhile join the queue
            queue = self._queues.get(name)
            while queue:
                await self._deliver(queue.popleft())
        except HookFailure as failure:
            self._fail(name, failure)
            raise

        self._ready[name] = component
        self._queues.pop(name, None)
        logger.debug("Component %s is ready", name)

        future = self._ready_futures.pop(name, None)
        if future is not None and not future.done():
            future.set_result(component)
        for waiter in self._waiters.pop(name, []):
            if not waiter.done():
                waiter.set_result(component)

    def _fail(self, name: str, failure: HookFailure) -> None:
        logger.debug("Component %s failed to become ready: %s", name, failure)
        self._failed[name] = failure
        for waiter in self._waiters.pop(name, []):
            if not waiter.done():
                waiter.set_exception(failure)

    async def notify_used(self, dependency: str, dependent: str, component: Any) -> None:
        """
        Tell ``dependency`` that ``dependent`` became ready and holds a reference to it.

        Each pair is notified at most once. If the dependency is not ready the
        notification is queued until it is.
        """
        if (dependency, dependent) in self._notified:
            return
        self._notified.add((dependency, dependent))

        event = LoadEvent(dependency, self.loaded, dependent, component)
        if not self.is_ready(dependency):
            logger.debug("Queued used_by %s -> %s", dependent, dependency)
            self._queues.setdefault(dependency, deque()).append(event)
            return

        await self._deliver(event)

    async def _deliver(self, event: LoadEvent) -> None:
        hook = self._manifest_of(event.name).hook(Capability.USED_BY)
        if hook is None:
            return
        logger.debug("Delivering used_by %s -> %s", event.by_name, event.name)
        await invoke_hook(event.name, Capability.USED_BY, hook, event)

    async def until_ready(self, name: str) -> Any:
        """
        Wait until ``name`` is ready.

        A failed component never becomes ready, so waiting on it blocks.
        """
        if name in self._ready:
            return self._ready[name]
        future = self._ready_futures.get(name)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._ready_futures[name] = future
        return await future

    async def wait(self, names: list[str]) -> dict[str, Any]:
        """Wait until every name is ready, raising the failure of any that failed."""
        waiters: list[asyncio.Future[Any]] = []
        for name in names:
            if name in self._failed:
                raise self._failed[name]
            if name in self._ready:
                continue
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.setdefault(name, []).append(waiter)
            waiters.append(waiter)
        if waiters:
            await asyncio.gather(*waiters)
        return dict(self._ready)

    async def teardown(self, order: list[str], components: Mapping[str, Any]) -> None:
        """
        Run ``teardown`` hooks in the given order.

        Every hook is run even if an earlier one fails; the first failure is
        raised once all of them have settled.
        """
        first: HookFailure | None = None
        for name in order:
            if name not in components:
                continue
            hook = self._manifest_of(name).hook(Capability.TEARDOWN)
            if hook is None:
                continue
            logger.debug("Tearing down %s", name)
            try:
                await invoke_hook(name, Capability.TEARDOWN, hook)
            except HookFailure as failure:
                if first is None:
                    first = failure
                else:
                    logger.error("%s", failure)
        if first is not None:
            raise first
