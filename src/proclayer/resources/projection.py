"""
Field-visibility projection.

``project(data, schema, level)`` copies the fields of ``data`` that a viewer
at ``level`` may see. It never mutates its input and never adds a field that
is absent from the data. Records may be mappings or plain objects (pydantic
models, dataclasses); lists are projected item by item, and relation fields
are projected recursively with the same level.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from proclayer.resources.schema import ResourceSchema
from proclayer.resources.visibility import VisibilityLevel, as_level, is_visible_at

_MISSING = object()


def _is_reserved(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _read(data: Any, name: str) -> Any:
    if isinstance(data, Mapping):
        return data.get(name, _MISSING)
    return getattr(data, name, _MISSING)


def _is_sequence(data: Any) -> bool:
    return isinstance(data, (list, tuple))


def project(
    data: Any,
    schema: ResourceSchema,
    level: VisibilityLevel | str | None = None,
) -> Any:
    """Project ``data`` through ``schema``.

    The effective level is ``level`` if given, else the schema's tag, else
    public. ``None`` is returned unchanged.
    """
    effective = as_level(level or schema.level or VisibilityLevel.PUBLIC)
    if data is None:
        return None
    if _is_sequence(data):
        return [project(item, schema, effective) for item in data]

    result: dict[str, Any] = {}
    for f in schema.fields:
        if not is_visible_at(f.visibility, effective) or _is_reserved(f.name):
            continue
        value = _read(data, f.name)
        if value is _MISSING:
            continue
        if f.is_relation and value is not None:
            if f.cardinality == "many":
                value = [project(item, f.nested, effective) for item in value]
            else:
                value = project(value, f.nested, effective)
        result[f.name] = value
    return result


def infer_level(ctx: Mapping[str, Any]) -> VisibilityLevel:
    """Best-effort level from a context: admin flags and roles, then any user."""
    if ctx.get("is_admin") is True:
        return VisibilityLevel.ADMIN
    user = ctx.get("user")
    roles = _read(user, "roles") if user is not None else _MISSING
    if isinstance(roles, (list, tuple, set, frozenset)) and "admin" in roles:
        return VisibilityLevel.ADMIN
    if user is not None:
        return VisibilityLevel.AUTHENTICATED
    auth = ctx.get("auth")
    if auth is not None and _read(auth, "is_authenticated") is True:
        return VisibilityLevel.AUTHENTICATED
    return VisibilityLevel.PUBLIC


class Resource:
    """A record paired with its schema, projected on demand."""

    def __init__(self, data: Any, schema: ResourceSchema):
        self._data = data
        self._schema = schema

    def for_level(self, level: VisibilityLevel | str) -> dict[str, Any]:
        return project(self._data, self._schema, level)

    def for_anonymous(self) -> dict[str, Any]:
        return self.for_level(VisibilityLevel.PUBLIC)

    def for_authenticated(self) -> dict[str, Any]:
        return self.for_level(VisibilityLevel.AUTHENTICATED)

    def for_admin(self) -> dict[str, Any]:
        return self.for_level(VisibilityLevel.ADMIN)

    def for_context(self, ctx: Mapping[str, Any]) -> dict[str, Any]:
        return self.for_level(infer_level(ctx))


class ResourceCollection:
    """Several records sharing one schema."""

    def __init__(self, items: Iterable[Any], schema: ResourceSchema):
        self._items = list(items)
        self._schema = schema

    def for_level(self, level: VisibilityLevel | str) -> list[dict[str, Any]]:
        return [project(item, self._schema, level) for item in self._items]

    def for_anonymous(self) -> list[dict[str, Any]]:
        return self.for_level(VisibilityLevel.PUBLIC)

    def for_authenticated(self) -> list[dict[str, Any]]:
        return self.for_level(VisibilityLevel.AUTHENTICATED)

    def for_admin(self) -> list[dict[str, Any]]:
        return self.for_level(VisibilityLevel.ADMIN)

    def for_context(self, ctx: Mapping[str, Any]) -> list[dict[str, Any]]:
        return self.for_level(infer_level(ctx))

    def __len__(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items


__all__ = ["project", "infer_level", "Resource", "ResourceCollection"]
