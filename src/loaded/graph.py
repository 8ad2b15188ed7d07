"""
Dependency graph of named components.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

_MISSING: Any = object()


class LoaderError(Exception):
    """Base class for all errors raised by the loader."""


class NodeNotFoundError(LoaderError, KeyError):
    """Raised when an operation references a node that is not in the graph."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Node does not exist: {name}")

    def __str__(self) -> str:
        return f"Node does not exist: {self.name}"


class CircularDependencyError(LoaderError):
    """Raised when circular dependencies are detected."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Circular dependency detected: {cycle_str}")


class DependencyGraph:
    """
    Directed graph of named nodes with optional payload.

    An edge ``(a, b)`` means "a depends on b". Edges are indexed in both
    directions so that dependencies and dependants can be queried equally fast.
    """

    def __init__(self, circular: bool = False) -> None:
        super().__init__()
        self.circular = circular
        self._nodes: dict[str, Any] = {}
        # dicts used as insertion-ordered sets
        self._outgoing: dict[str, dict[str, None]] = {}
        self._incoming: dict[str, dict[str, None]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._nodes))

    def size(self) -> int:
        """Number of nodes in the graph."""
        return len(self._nodes)

    def nodes(self) -> list[str]:
        """All node names in insertion order."""
        return list(self._nodes)

    def add_node(self, name: str, payload: Any = _MISSING) -> None:
        """
        Add a node with optional payload. Adding a known name is a no-op.

        When no payload is given, the name itself is stored as payload.
        """
        if name in self._nodes:
            return
        self._nodes[name] = name if payload is _MISSING else payload
        self._outgoing[name] = {}
        self._incoming[name] = {}
        logger.debug("Added node %s", name)

    def has_node(self, name: str) -> bool:
        return name in self._nodes

    def remove_node(self, name: str) -> None:
        """Remove a node and every edge touching it."""
        if name not in self._nodes:
            return
        del self._nodes[name]
        del self._outgoing[name]
        del self._incoming[name]
        for edges in (self._outgoing, self._incoming):
            for targets in edges.values():
                targets.pop(name, None)

    def get_node_data(self, name: str) -> Any:
        if name not in self._nodes:
            raise NodeNotFoundError(name)
        return self._nodes[name]

    def set_node_data(self, name: str, payload: Any) -> None:
        if name not in self._nodes:
            raise NodeNotFoundError(name)
        self._nodes[name] = payload

    def add_dependency(self, source: str, target: str) -> None:
        """Record that ``source`` depends on ``target``."""
        if source not in self._nodes:
            raise NodeNotFoundError(source)
        if target not in self._nodes:
            raise NodeNotFoundError(target)
        if target not in self._outgoing[source]:
            logger.debug("Added dependency %s -> %s", source, target)
        self._outgoing[source][target] = None
        self._incoming[target][source] = None

    def remove_dependency(self, source: str, target: str) -> None:
        if source in self._nodes:
            self._outgoing[source].pop(target, None)
        if target in self._nodes:
            self._incoming[target].pop(source, None)

    def has_dependency(self, source: str, target: str) -> bool:
        return source in self._nodes and target in self._outgoing[source]

    def direct_dependencies_of(self, name: str) -> list[str]:
        """Nodes that ``name`` depends on directly."""
        if name not in self._nodes:
            raise NodeNotFoundError(name)
        return list(self._outgoing[name])

    def direct_dependants_of(self, name: str) -> list[str]:
        """Nodes that depend directly on ``name``."""
        if name not in self._nodes:
            raise NodeNotFoundError(name)
        return list(self._incoming[name])

    def dependencies_of(self, name: str, leaves_only: bool = False) -> list[str]:
        """
        Get the nodes that ``name`` depends on, transitively.

        Args:
            name: The node to start from
            leaves_only: Only return nodes that depend on nothing

        Returns:
            Distinct node names, dependencies before dependants, excluding ``name``

        Raises:
            NodeNotFoundError: If ``name`` is not in the graph
            CircularDependencyError: If a cycle is found and the graph is not circular
        """
        return self._closure(name, self._outgoing, leaves_only)

    def dependants_of(self, name: str, leaves_only: bool = False) -> list[str]:
        """
        Get the nodes that depend on ``name``, transitively.

        With ``leaves_only`` only nodes that nothing depends on are returned.
        """
        return self._closure(name, self._incoming, leaves_only)

    def _closure(
        self, name: str, edges: dict[str, dict[str, None]], leaves_only: bool
    ) -> list[str]:
        if name not in self._nodes:
            raise NodeNotFoundError(name)
        result: list[str] = []
        self._make_dfs(edges, leaves_only, result)(name)
        if name in result:
            result.remove(name)
        return result

    def overall_order(self, leaves_only: bool = False) -> list[str]:
        """
        Get a processing order where every node comes after its dependencies.

        Raises:
            CircularDependencyError: If a cycle is found and the graph is not circular
        """
        result: list[str] = []
        if not self._nodes:
            return result

        # Check every node so that disconnected subgraphs are covered
        cycle_dfs = self._make_dfs(self._outgoing, False, [])
        for name in self._nodes:
            cycle_dfs(name)

        dfs = self._make_dfs(self._outgoing, leaves_only, result)
        for name in self._nodes:
            if not self._incoming[name]:
                dfs(name)

        if self.circular:
            # Pure cycles have no root to start from
            for name in self._nodes:
                dfs(name)

        return result

    def _make_dfs(
        self,
        edges: dict[str, dict[str, None]],
        leaves_only: bool,
        result: list[str],
    ) -> Callable[[str], None]:
        """
        Create a depth-first search over ``edges`` that appends to ``result``.

        The returned function keeps its visited set between calls, so it can be
        started from several nodes and still emit every node at most once.
        """
        visited: set[str] = set()
        path: list[str] = []
        emitted: set[str] = set(result)

        def dfs(name: str) -> None:
            if name in visited:
                return
            visited.add(name)
            path.append(name)

            for target in edges[name]:
                if target not in visited:
                    dfs(target)
                elif target in path:
                    cycle = path[path.index(target) :] + [target]
                    if not self.circular:
                        raise CircularDependencyError(cycle)
                    logger.debug("Tolerating cycle %s", " -> ".join(cycle))

            path.pop()
            if (not leaves_only or not edges[name]) and name not in emitted:
                emitted.add(name)
                result.append(name)

        return dfs

    def clone(self) -> DependencyGraph:
        """Copy the graph. Payloads are shared, edge lists are not."""
        result = DependencyGraph(circular=self.circular)
        for name, payload in self._nodes.items():
            result._nodes[name] = payload
            result._outgoing[name] = dict(self._outgoing[name])
            result._incoming[name] = dict(self._incoming[name])
        return result
