"""Lazily-constructed object proxy.

``lazy_object(factory)`` returns a proxy that calls *factory* on the first
attribute access and forwards every access to the memoized result. First
construction is guarded by a lock, so concurrent first accesses build the
object once. If the factory raises, the proxy stays uninitialized and the
next access tries again.
"""

from __future__ import annotations

from collections.abc import Callable
import threading
from typing import Any

_UNSET: Any = object()


class LazyObject:
    """Proxy deferring construction of the wrapped object until first use."""

    __slots__ = ("_factory", "_instance", "_lock")

    def __init__(self, factory: Callable[[], Any]) -> None:
        object.__setattr__(self, "_factory", factory)
        object.__setattr__(self, "_instance", _UNSET)
        object.__setattr__(self, "_lock", threading.Lock())

    def _resolve(self) -> Any:
        instance = object.__getattribute__(self, "_instance")
        if instance is not _UNSET:
            return instance

        with object.__getattribute__(self, "_lock"):
            instance = object.__getattribute__(self, "_instance")
            if instance is _UNSET:
                factory = object.__getattribute__(self, "_factory")
                instance = factory()
                object.__setattr__(self, "_instance", instance)
                object.__setattr__(self, "_factory", None)
        return instance

    @property  # type: ignore[misc]
    def __class__(self) -> type:
        # isinstance() consults __class__ after type(), so checks against the
        # wrapped object's classes pass. Building the object is part of the check.
        return type(self._resolve())

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._resolve(), name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self._resolve(), name)

    def __dir__(self) -> list[str]:
        return dir(self._resolve())

    def __repr__(self) -> str:
        instance = object.__getattribute__(self, "_instance")
        if instance is _UNSET:
            return "<LazyObject (uninitialized)>"
        return f"<LazyObject {instance!r}>"


def lazy_object(factory: Callable[[], Any]) -> Any:
    """Wrap *factory* in a ``LazyObject``.

    Args:
        factory: Zero-argument callable building the real object.

    Returns:
        A proxy forwarding attribute access to the memoized object.
    """
    return LazyObject(factory)


def is_initialized(obj: LazyObject) -> bool:
    """Return whether the proxy has already built its object."""
    return object.__getattribute__(obj, "_instance") is not _UNSET
