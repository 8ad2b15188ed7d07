"""
Unresolved-dependency markers.

A component declares that it wants another component injected either by
initialising an attribute (or mapping entry) to ``UNRESOLVED`` or by declaring
a ``Slot`` on its class::

    class Users:
        database = Slot()

    class Cache:
        def __init__(self) -> None:
            self.database = UNRESOLVED

The slot name is the name of the component that will be injected.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Final, Generic, TypeVar, overload

from .graph import LoaderError


class _Unresolved:
    """Type of the ``UNRESOLVED`` sentinel."""

    _instance: _Unresolved | None = None

    def __new__(cls) -> _Unresolved:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unresolved:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _Unresolved:  # noqa: ARG002
        return self

    def __reduce__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED: Final = _Unresolved()


class SlotError(LoaderError, AttributeError):
    """Raised when an unfilled slot is read or a filled slot is assigned again."""


T = TypeVar("T")


class Slot(Generic[T]):
    """
    A dependency slot declared on a component class.

    Reading the slot before the loader has filled it raises ``SlotError``.
    The slot can be filled exactly once.
    """

    def __init__(self) -> None:
        self.name = ""
        self._attr = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._attr = f"_slot_{name}"

    @overload
    def __get__(self, instance: None, owner: type) -> Slot[T]: ...

    @overload
    def __get__(self, instance: object, owner: type) -> T: ...

    def __get__(self, instance: object | None, owner: type) -> Slot[T] | T:
        if instance is None:
            return self
        try:
            return instance.__dict__[self._attr]  # type: ignore[no-any-return]
        except KeyError:
            raise SlotError(f"Slot '{self.name}' of {type(instance).__name__} is not filled yet") from None

    def __set__(self, instance: object, value: T) -> None:
        if self._attr in instance.__dict__:
            raise SlotError(f"Slot '{self.name}' of {type(instance).__name__} is already filled")
        instance.__dict__[self._attr] = value

    def is_filled(self, instance: object) -> bool:
        return self._attr in instance.__dict__

    def __repr__(self) -> str:
        return f"Slot({self.name!r})"


def is_unresolved(component: Any, slot: str) -> bool:
    """Check whether ``slot`` on ``component`` still waits for a value."""
    descriptor = getattr(type(component), slot, None)
    if isinstance(descriptor, Slot):
        return not descriptor.is_filled(component)
    if isinstance(component, MutableMapping):
        return component.get(slot, None) is UNRESOLVED
    return getattr(component, slot, None) is UNRESOLVED


def fill(component: Any, slot: str, value: Any) -> None:
    """Assign ``value`` to ``slot`` on ``component``."""
    if isinstance(component, MutableMapping):
        component[slot] = value
    else:
        setattr(component, slot, value)
