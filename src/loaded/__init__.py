"""
Loaded - dynamic wiring of named components.

This library provides:
- A dependency graph with cycle-checked traversals
- Injection of components into each other's slots, including mutual references
- Components that arrive later as awaitables
- Ordered ``ready`` / ``used_by`` / ``teardown`` lifecycle hooks
"""

from collections.abc import Awaitable, Mapping
from typing import Any

from .graph import CircularDependencyError, DependencyGraph, LoaderError, NodeNotFoundError
from .introspection import Capability, ComponentManifest, ManifestIntrospector
from .lifecycle import HookFailure, LoadEvent
from .loader import Loader
from .retrieval import Pending, Retrieved
from .slots import UNRESOLVED, Slot, SlotError


def load(components: Mapping[str, Any]) -> dict[str, Any] | Awaitable[dict[str, Any]]:
    """Load components into the shared default loader."""
    return Loader.default().load(components)


__all__ = [
    "UNRESOLVED",
    "Capability",
    "CircularDependencyError",
    "ComponentManifest",
    "DependencyGraph",
    "HookFailure",
    "LoadEvent",
    "Loader",
    "LoaderError",
    "ManifestIntrospector",
    "NodeNotFoundError",
    "Pending",
    "Retrieved",
    "Slot",
    "SlotError",
    "load",
]
