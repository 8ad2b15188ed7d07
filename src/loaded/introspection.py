"""
Component introspection: dependency manifests and lifecycle capabilities.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .slots import UNRESOLVED, Slot


class Capability(Enum):
    """Lifecycle hooks a component can advertise."""

    READY = "ready"
    USED_BY = "used_by"
    TEARDOWN = "teardown"


@dataclass(frozen=True)
class ComponentManifest:
    """
    What the loader knows about a component, read once when it is retrieved.

    Attributes:
        slots: Names of the components this one wants injected, in declaration order
        hooks: Bound hook callables by capability
        async_hooks: Capabilities whose hook is a coroutine function
    """

    slots: tuple[str, ...] = ()
    hooks: Mapping[Capability, Callable[..., Any]] = field(default_factory=dict)
    async_hooks: frozenset[Capability] = frozenset()

    def has(self, capability: Capability) -> bool:
        return capability in self.hooks

    def hook(self, capability: Capability) -> Callable[..., Any] | None:
        return self.hooks.get(capability)

    def is_async(self, capability: Capability) -> bool:
        return capability in self.async_hooks

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset(self.hooks)

    def __str__(self) -> str:
        caps = ", ".join(c.value for c in self.hooks)
        return f"slots=[{', '.join(self.slots)}] hooks=[{caps}]"


class ManifestIntrospector:
    """Reads dependency slots and hooks from component values."""

    @staticmethod
    def extract_slots(component: Any) -> tuple[str, ...]:
        """
        Find the slot names a component declares.

        Slots come from ``Slot`` descriptors on the component's class, from
        instance attributes set to ``UNRESOLVED`` and, for mappings, from keys
        whose value is ``UNRESOLVED``.
        """
        names: dict[str, None] = {}

        for klass in reversed(type(component).__mro__):
            for attr, value in vars(klass).items():
                if isinstance(value, Slot):
                    names[attr] = None

        if isinstance(component, Mapping):
            for key, value in component.items():
                if isinstance(key, str) and value is UNRESOLVED:
                    names[key] = None
        else:
            try:
                attributes = vars(component)
            except TypeError:
                attributes = {}
            for attr, value in attributes.items():
                if value is UNRESOLVED:
                    names[attr] = None

        return tuple(names)

    @staticmethod
    def extract_hooks(component: Any) -> dict[Capability, Callable[..., Any]]:
        """Collect the lifecycle hooks a component provides."""
        hooks: dict[Capability, Callable[..., Any]] = {}
        for capability in Capability:
            if isinstance(component, Mapping):
                hook = component.get(capability.value)
            else:
                hook = getattr(component, capability.value, None)
            if callable(hook):
                hooks[capability] = hook
        return hooks

    @classmethod
    def manifest(cls, component: Any) -> ComponentManifest:
        """Build the manifest for a component."""
        hooks = cls.extract_hooks(component)
        async_hooks = frozenset(
            capability
            for capability, hook in hooks.items()
            if inspect.iscoroutinefunction(hook)
        )
        return ComponentManifest(cls.extract_slots(component), hooks, async_hooks)
