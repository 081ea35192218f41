"""
Immutable, structurally-shared execution context.

A :class:`Context` is the accumulator threaded through a procedure's
middleware chain. Each ``extend()`` call returns a new Context whose newest
layer sits in front of the parent's layers (a ``ChainMap`` child), so the
parent is never copied and never mutated. Two invocations that start from
the same base context can extend it concurrently without interfering.

Examples:
    >>> base = Context(request=None)
    >>> authed = base.extend(user={"id": "u1"})
    >>> "user" in base, authed.user["id"]
    (False, 'u1')
    >>> base.extend() is base
    True
"""

from __future__ import annotations

from collections import ChainMap
from collections.abc import Iterator, Mapping
from typing import Any


class Context(Mapping[str, Any]):
    """Read-only mapping with attribute access and persistent extension."""

    __slots__ = ("_layers",)

    def __init__(self, base: Mapping[str, Any] | None = None, /, **values: Any):
        data = dict(base or {})
        data.update(values)
        object.__setattr__(self, "_layers", ChainMap(data))

    @classmethod
    def _from_layers(cls, layers: ChainMap) -> Context:
        ctx = cls.__new__(cls)
        object.__setattr__(ctx, "_layers", layers)
        return ctx

    def extend(self, extension: Mapping[str, Any] | None = None, /, **values: Any) -> Context:
        """Return a new context with ``extension`` merged over this one.

        An empty extension returns ``self`` unchanged.
        """
        layer = dict(extension or {})
        layer.update(values)
        if not layer:
            return self
        return Context._from_layers(self._layers.new_child(layer))

    def to_dict(self) -> dict[str, Any]:
        return dict(self._layers)

    @property
    def depth(self) -> int:
        """Number of layers (1 for a base context)."""
        return len(self._layers.maps)

    def __getitem__(self, key: str) -> Any:
        return self._layers[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name == "_layers":
            raise AttributeError(name)
        try:
            return self._layers[name]
        except KeyError:
            raise AttributeError(f"Context has no attribute {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Context is immutable; use extend()")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Context is immutable; use extend()")

    def __repr__(self) -> str:
        keys = ", ".join(sorted(self._layers))
        return f"Context({keys})"


def as_context(value: Mapping[str, Any] | Context | None) -> Context:
    """Coerce a mapping (or None) to a :class:`Context`."""
    if isinstance(value, Context):
        return value
    return Context(value)


__all__ = ["Context", "as_context"]
