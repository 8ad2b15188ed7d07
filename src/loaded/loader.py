"""
Loader - wires named components together and drives their lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Coroutine, Generator, Iterable, Mapping
from typing import Any, Generic, TypeVar

from .graph import DependencyGraph
from .introspection import Capability, ComponentManifest, ManifestIntrospector
from .lifecycle import HookFailure, LifecycleNotifier
from .retrieval import RetrievalRegistry, is_pending, unwrap_default
from .slots import fill, is_unresolved

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class _Resumption(Generic[R]):
    """Awaitable that keeps driving a coroutine which suspended during a synchronous run."""

    def __init__(self, coro: Coroutine[Any, Any, R], yielded: Any) -> None:
        super().__init__()
        self._coro = coro
        self._yielded = yielded

    def __await__(self) -> Generator[Any, Any, R]:
        coro, yielded = self._coro, self._yielded
        while True:
            try:
                sent = yield yielded
            except GeneratorExit:
                coro.close()
                raise
            except BaseException as e:
                try:
                    yielded = coro.throw(e)
                except StopIteration as stop:
                    return stop.value  # type: ignore[no-any-return]
            else:
                try:
                    yielded = coro.send(sent)
                except StopIteration as stop:
                    return stop.value  # type: ignore[no-any-return]


def _drive(coro: Coroutine[Any, Any, T]) -> T | Awaitable[T]:
    """
    Run a coroutine synchronously as far as it goes.

    Returns its result if it finishes without suspending, otherwise an
    awaitable that continues it from where it stopped.
    """
    try:
        yielded = coro.send(None)
    except StopIteration as stop:
        return stop.value  # type: ignore[no-any-return]
    logger.debug("Synchronous load suspended, continuing asynchronously")
    return _Resumption(coro, yielded)


def _raise_first(failures: list[BaseException]) -> None:
    """Raise the first failure and log the others."""
    if not failures:
        return
    for failure in failures[1:]:
        logger.error("Further failure while loading: %s", failure)
    raise failures[0]


class WiringState:
    """
    Everything one generation of a loader knows: the graph, retrieval and
    readiness state. ``Loader.reset`` replaces it with a fresh instance, so
    work still in flight from before the reset cannot touch the new state.
    """

    def __init__(self) -> None:
        super().__init__()
        # Mutual references are allowed between components
        self.graph = DependencyGraph(circular=True)
        self.manifests: dict[str, ComponentManifest] = {}
        self.retrieval = RetrievalRegistry(self._reflect)
        self.notifier = LifecycleNotifier(self.manifest_of)

    def manifest_of(self, name: str) -> ComponentManifest:
        return self.manifests.get(name) or ComponentManifest()

    def register(self, components: Mapping[str, Any]) -> list[str]:
        """Register a batch of inputs and return the names that are new."""
        new_names = [name for name in components if name not in self.retrieval]
        # Every name becomes a node first so slots can match names from the same batch
        for name in new_names:
            self.graph.add_node(name, None)
        for name, value in components.items():
            self.retrieval.register(name, value)
        return new_names

    def _reflect(self, name: str, component: Any) -> None:
        """Read the manifest of a retrieved component and record its dependencies."""
        manifest = ManifestIntrospector.manifest(component)
        self.manifests[name] = manifest
        self.graph.set_node_data(name, component)
        logger.debug("Component %s: %s", name, manifest)
        self._link(name)

    def _link(self, name: str) -> bool:
        """Add edges for unresolved slots of ``name`` that match known components."""
        component = self.graph.get_node_data(name)
        added = False
        for slot in self.manifest_of(name).slots:
            if slot in self.graph and not self.graph.has_dependency(name, slot) and is_unresolved(component, slot):
                self.graph.add_dependency(name, slot)
                added = True
        return added

    def build_graph(self, new_names: list[str]) -> list[str]:
        """
        Link every retrieved component against the known names.

        Returns the names to process for this batch: the new ones plus earlier
        components that gained dependencies.
        """
        affected = dict.fromkeys(new_names)
        for name in self.retrieval.retrieved():
            # Components still on their way to ready pick up new edges themselves
            if self._link(name) and self.notifier.is_ready(name):
                affected[name] = None
        order = [name for name in self.graph.overall_order() if name in affected]
        return order

    def closure(self, name: str) -> list[str]:
        return [*self.graph.dependencies_of(name), name]

    async def await_closure(self, name: str) -> None:
        """Wait until ``name`` and its transitive dependencies are all retrieved."""
        while True:
            pending = [n for n in self.closure(name) if not self.retrieval.is_retrieved(n)]
            if not pending:
                return
            # Dependencies of newly retrieved components extend the closure
            await self.retrieval.wait_for(pending)

    def attach(self, name: str) -> None:
        """Fill unresolved slots across the closure of ``name``."""
        for node in self.closure(name):
            component = self.retrieval.value(node)
            for slot in self.manifest_of(node).slots:
                if self.retrieval.is_retrieved(slot) and is_unresolved(component, slot):
                    fill(component, slot, self.retrieval.value(slot))
                    logger.debug("Attached %s to %s", slot, node)

    def ordered_dependencies(self, name: str) -> list[str]:
        """Direct dependencies of ``name`` that are not in a cycle with it."""
        return [
            dep
            for dep in self.graph.direct_dependencies_of(name)
            if dep != name and name not in self.graph.dependencies_of(dep)
        ]

    async def pipeline(self, name: str) -> None:
        """Retrieve, attach and make one component ready, then notify its dependencies."""
        notifier = self.notifier
        while True:
            deps = self.graph.direct_dependencies_of(name)
            await self.await_closure(name)
            self.attach(name)
            if notifier.is_ready(name):
                break
            for dep in self.ordered_dependencies(name):
                await notifier.until_ready(dep)
            if deps == self.graph.direct_dependencies_of(name):
                break

        component = self.retrieval.value(name)
        if not notifier.is_ready(name):
            await notifier.run_ready(name, component)
            # Edges may have been added while the ready hook ran
            await self.await_closure(name)
            self.attach(name)

        for dep in self.graph.direct_dependencies_of(name):
            await notifier.notify_used(dep, name, component)

    def blocked(self, name: str) -> bool:
        """Check whether ``name`` waits, directly or transitively, on a component whose hook failed."""
        return any(
            self.notifier.failure(dep) is not None or self.blocked(dep) for dep in self.ordered_dependencies(name)
        )

    async def run(self, names: list[str], concurrent: bool) -> dict[str, Any]:
        """
        Run the pipelines of ``names``.

        A failure does not stop components that do not depend on the failed
        one. Once every remaining component is blocked behind a failure, the
        first failure is raised and the others are logged.
        """
        failures: list[BaseException] = []
        if concurrent:
            tasks = {asyncio.ensure_future(self.pipeline(name)): name for name in names}
            pending = set(tasks)
            try:
                while pending:
                    done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                    for task in done:
                        error = task.exception()
                        # Dependants of a failed pending input fail with the same exception
                        if error is not None and not any(error is seen for seen in failures):
                            failures.append(error)
                    if failures and all(self.blocked(tasks[task]) for task in pending):
                        break
            finally:
                for task in pending:
                    task.cancel()
        else:
            for name in names:
                if failures and self.blocked(name):
                    continue
                try:
                    await self.pipeline(name)
                except HookFailure as failure:
                    failures.append(failure)
        _raise_first(failures)
        return dict(self.notifier.loaded)

    def needs_async(self, components: Mapping[str, Any]) -> bool:
        """Check whether loading ``components`` may have to suspend."""
        # Duplicates are ignored, so only new names count
        new = [value for name, value in components.items() if name not in self.retrieval]
        if any(is_pending(value) for value in new):
            return True
        for name in self.retrieval.retrieved():
            if not self.notifier.is_ready(name) or self.manifest_of(name).async_hooks:
                return True
        if self.retrieval.pending_names():
            return True
        for value in new:
            if ManifestIntrospector.manifest(unwrap_default(value)).async_hooks:
                return True
        return False


class Loader:
    """
    Registers named components, injects them into each other's slots and
    drives their ``ready``, ``used_by`` and ``teardown`` hooks.

    A loader can be loaded into repeatedly; components from later calls may
    depend on components from earlier ones and vice versa.
    """

    _default: Loader | None = None

    def __init__(self) -> None:
        super().__init__()
        self._state = WiringState()

    @classmethod
    def default(cls) -> Loader:
        """Get the shared process-wide loader, creating it on first use."""
        if cls._default is None:
            cls._default = cls()
        return cls._default

    @property
    def graph(self) -> DependencyGraph:
        """Dependency graph of the current components, for inspection."""
        return self._state.graph

    def ready_components(self) -> Mapping[str, Any]:
        """Live read-only view of ready components."""
        return self._state.notifier.loaded

    def is_ready(self, name: str) -> bool:
        return self._state.notifier.is_ready(name)

    def load(self, components: Mapping[str, Any]) -> dict[str, Any] | Awaitable[dict[str, Any]]:
        """
        Load components.

        Returns the ready components directly when nothing has to be waited
        for. When an input is awaitable, a hook is asynchronous, or an earlier
        component is not ready yet, returns an awaitable instead.

        Args:
            components: Mapping of component name to value or awaitable of value

        Returns:
            All ready components by name, or an awaitable of them
        """
        if self._state.needs_async(components):
            return self.load_async(components)
        return _drive(self._load(components, concurrent=False))

    async def load_async(self, components: Mapping[str, Any]) -> dict[str, Any]:
        """Load components, waiting for pending inputs and asynchronous hooks."""
        return await self._load(components, concurrent=True)

    async def _load(self, components: Mapping[str, Any], concurrent: bool) -> dict[str, Any]:
        state = self._state
        new_names = state.register(components)
        names = state.build_graph(new_names)
        logger.debug("Loading %s", ", ".join(names))
        return await state.run(names, concurrent)

    async def wait(self, names: Iterable[str]) -> dict[str, Any]:
        """
        Wait until every listed component is ready.

        Names do not need to be registered yet.

        Returns:
            All ready components by name

        Raises:
            HookFailure: If a listed component failed to become ready
        """
        if isinstance(names, str):
            names = [names]
        return await self._state.notifier.wait(list(names))

    def reset(self) -> None | Awaitable[None]:
        """
        Tear down every component, dependants first, and forget all state.

        Returns an awaitable when a teardown hook is a coroutine function or
        returns an awaitable.
        """
        if any(m.is_async(Capability.TEARDOWN) for m in self._state.manifests.values()):
            return self.reset_async()
        return _drive(self.reset_async())

    async def reset_async(self) -> None:
        """Tear down every component, dependants first, and forget all state."""
        state = self._state
        order = list(reversed(state.graph.overall_order()))
        try:
            await state.notifier.teardown(order, state.retrieval.retrieved())
        finally:
            state.retrieval.clear()
            self._state = WiringState()
            logger.debug("Loader reset")
