"""Opt-in ambient scope for task code.

Task actions receive the environment explicitly. Code that prefers not to
thread it through (interactive shells, helper modules) can import
``default_scope`` and read the members injected for the current run::

    from taskenv.ambient import default_scope

    async def deploy(args, env, run_super):
        await helper()

    async def helper():
        return await default_scope.provider.request("net_name")

Nothing outside this object is modified. Writes are always paired with a
restore, so values never outlive the run that injected them. A single
scope is shared by everything using it: two top-level runs in flight at
the same time against one scope will corrupt each other's snapshots.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

RUN_SUPER_SLOT = "run_super"
"""Reserved name holding the current task's ``run_super`` callable."""

ABSENT: Any = object()
"""Marker for a name that had no value in the scope."""


class AmbientScope:
    """Mutable namespace of ambient values."""

    def __init__(self) -> None:
        object.__setattr__(self, "_values", {})

    def __getattr__(self, name: str) -> Any:
        values: dict[str, Any] = object.__getattribute__(self, "_values")
        try:
            return values[name]
        except KeyError:
            msg = f"No ambient value named {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "Ambient values can only be changed through swap()/restore()"
        raise AttributeError(msg)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(dict(self._values))

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def swap(self, name: str, value: Any) -> Any:
        """Set *name* to *value* and return the previous value or ``ABSENT``."""
        previous = self._values.get(name, ABSENT)
        self._values[name] = value
        return previous

    def restore(self, name: str, previous: Any) -> None:
        """Put back a value returned by ``swap``, removing it if it was absent."""
        if previous is ABSENT:
            self._values.pop(name, None)
        else:
            self._values[name] = previous

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the current values."""
        return dict(self._values)


default_scope = AmbientScope()
"""Process-wide default scope used by environments."""
