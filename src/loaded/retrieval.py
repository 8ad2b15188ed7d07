"""
Retrieval of component inputs that are either available now or still pending.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from types import ModuleType
from typing import Any, TypeAlias

from .graph import LoaderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Retrieved:
    """A component whose value is available."""

    value: Any


@dataclass(frozen=True)
class Pending:
    """A component whose value is still being produced."""

    future: asyncio.Future[Any]


RetrievalState: TypeAlias = Retrieved | Pending


def unwrap_default(value: Any) -> Any:
    """Unwrap one level of default-export packaging (a module with a ``default`` attribute)."""
    if isinstance(value, ModuleType) and hasattr(value, "default"):
        return value.default
    return value


def is_pending(value: Any) -> bool:
    return inspect.isawaitable(value)


class RetrievalRegistry:
    """
    Per-name retrieval state.

    A name moves from ``Pending`` to ``Retrieved`` at most once and never
    back. ``on_retrieved`` is called with the name and unwrapped value as soon
    as a value becomes available.
    """

    def __init__(self, on_retrieved: Callable[[str, Any], None]) -> None:
        super().__init__()
        self._on_retrieved: Callable[[str, Any], None] | None = on_retrieved
        self._states: dict[str, RetrievalState] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._states

    def register(self, name: str, value: Any) -> RetrievalState:
        """Register an input, which may be an awaitable."""
        if name in self._states:
            logger.warning("Component %s is already registered, ignoring new value", name)
            if inspect.iscoroutine(value):
                value.close()
            return self._states[name]

        if is_pending(value):
            future = asyncio.ensure_future(self._settle(name, value))
            state: RetrievalState = Pending(future)
            self._states[name] = state
            logger.debug("Component %s is pending", name)
            return state

        return self._retrieve(name, value)

    async def _settle(self, name: str, awaitable: Awaitable[Any]) -> Any:
        value = await awaitable
        if not isinstance(self._states.get(name), Pending):
            # registry was cleared while waiting
            return unwrap_default(value)
        return self._retrieve(name, value).value

    def _retrieve(self, name: str, value: Any) -> Retrieved:
        state = Retrieved(unwrap_default(value))
        self._states[name] = state
        logger.debug("Component %s is retrieved", name)
        if self._on_retrieved is not None:
            self._on_retrieved(name, state.value)
        return state

    def state(self, name: str) -> RetrievalState | None:
        return self._states.get(name)

    def is_retrieved(self, name: str) -> bool:
        return isinstance(self._states.get(name), Retrieved)

    def is_pending(self, name: str) -> bool:
        return isinstance(self._states.get(name), Pending)

    def value(self, name: str) -> Any:
        state = self._states.get(name)
        if not isinstance(state, Retrieved):
            raise KeyError(name)
        return state.value

    def retrieved(self) -> dict[str, Any]:
        """All retrieved values by name."""
        return {name: state.value for name, state in self._states.items() if isinstance(state, Retrieved)}

    def pending_names(self) -> list[str]:
        return [name for name, state in self._states.items() if isinstance(state, Pending)]

    async def wait_for(self, names: list[str]) -> None:
        """
        Wait, concurrently, until every name in ``names`` is retrieved.

        Raises:
            LoaderError: If a name is not registered, e.g. after the registry was cleared
        """
        futures = []
        for name in names:
            state = self._states.get(name)
            if state is None:
                raise LoaderError(f"Component {name} is not registered")
            if isinstance(state, Pending):
                futures.append(state.future)
        if futures:
            await asyncio.gather(*futures)

    def clear(self) -> None:
        """Forget every name. Pending inputs that settle later are ignored."""
        self._on_retrieved = None
        self._states.clear()
