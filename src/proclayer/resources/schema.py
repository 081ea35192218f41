"""
Resource schemas: ordered fields tagged with a visibility level.

A resource schema describes the admin-level superset of a record and, for
each field, the lowest level allowed to see it. Build one fluently, then use
one of its tagged views to fix the projection level:

    >>> user_schema = (
    ...     resource_schema()
    ...     .public("id")
    ...     .public("name")
    ...     .authenticated("email")
    ...     .admin("password_hash")
    ...     .build()
    ... )
    >>> user_schema.public.level
    <VisibilityLevel.PUBLIC: 'public'>
    >>> user_schema.public.fields is user_schema.admin.fields
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Literal

from proclayer.core.errors import ConstructionError
from proclayer.core.schema import Schema, as_schema, json_schema_of
from proclayer.resources.visibility import VisibilityLevel, as_level, is_visible_at

Cardinality = Literal["one", "many"]


@dataclass(frozen=True)
class ResourceField:
    """One field of a resource. Relation fields carry a nested schema."""

    name: str
    visibility: VisibilityLevel
    schema: Schema | None = None
    nested: ResourceSchema | None = None
    cardinality: Cardinality | None = None

    @property
    def is_relation(self) -> bool:
        return self.nested is not None


@dataclass(frozen=True, eq=False)
class ResourceSchema:
    """Frozen field list, optionally tagged with a projection level."""

    fields: tuple[ResourceField, ...]
    level: VisibilityLevel | None = None

    @property
    def is_tagged(self) -> bool:
        return self.level is not None

    def tagged(self, level: VisibilityLevel | str) -> ResourceSchema:
        """Return a view of this schema fixed at ``level``; fields are shared."""
        return ResourceSchema(fields=self.fields, level=as_level(level))

    @cached_property
    def public(self) -> ResourceSchema:
        return self.tagged(VisibilityLevel.PUBLIC)

    @cached_property
    def authenticated(self) -> ResourceSchema:
        return self.tagged(VisibilityLevel.AUTHENTICATED)

    @cached_property
    def admin(self) -> ResourceSchema:
        return self.tagged(VisibilityLevel.ADMIN)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def visible_fields(self, level: VisibilityLevel | str) -> tuple[ResourceField, ...]:
        return tuple(f for f in self.fields if is_visible_at(f.visibility, level))

    def json_schema(self, level: VisibilityLevel | str | None = None) -> dict[str, Any]:
        """JSON schema of the projected shape at ``level`` (default: the tag, else admin)."""
        effective = as_level(level or self.level or VisibilityLevel.ADMIN)
        properties: dict[str, Any] = {}
        for f in self.visible_fields(effective):
            if f.is_relation:
                nested = f.nested.json_schema(effective)
                if f.cardinality == "many":
                    properties[f.name] = {"type": "array", "items": nested}
                else:
                    properties[f.name] = {**nested, "nullable": True}
            else:
                properties[f.name] = json_schema_of(f.schema) or {}
        return {"type": "object", "properties": properties}

    def __repr__(self) -> str:
        tag = f", level={self.level.value}" if self.level else ""
        return f"ResourceSchema({', '.join(self.field_names)}{tag})"


@dataclass(frozen=True)
class ResourceSchemaBuilder:
    """Immutable builder; each call returns a new builder with one more field."""

    fields: tuple[ResourceField, ...] = ()

    def _add(self, new_field: ResourceField) -> ResourceSchemaBuilder:
        if not isinstance(new_field.name, str) or not new_field.name:
            raise ConstructionError("Resource field names must be non-empty strings")
        if any(f.name == new_field.name for f in self.fields):
            raise ConstructionError(f"Duplicate resource field: {new_field.name!r}")
        return ResourceSchemaBuilder(fields=(*self.fields, new_field))

    def field(self, name: str, schema: Any = None, level: VisibilityLevel | str = VisibilityLevel.PUBLIC) -> ResourceSchemaBuilder:
        return self._add(
            ResourceField(
                name=name,
                visibility=as_level(level),
                schema=as_schema(schema) if schema is not None else None,
            )
        )

    def public(self, name: str, schema: Any = None) -> ResourceSchemaBuilder:
        return self.field(name, schema, VisibilityLevel.PUBLIC)

    def authenticated(self, name: str, schema: Any = None) -> ResourceSchemaBuilder:
        return self.field(name, schema, VisibilityLevel.AUTHENTICATED)

    def admin(self, name: str, schema: Any = None) -> ResourceSchemaBuilder:
        return self.field(name, schema, VisibilityLevel.ADMIN)

    def _relation(
        self,
        name: str,
        nested: ResourceSchema,
        level: VisibilityLevel | str,
        cardinality: Cardinality,
    ) -> ResourceSchemaBuilder:
        if not isinstance(nested, ResourceSchema):
            raise ConstructionError(
                f"Relation {name!r} needs a built ResourceSchema, got {type(nested).__name__}",
                fix="Call .build() on the nested resource_schema()",
            )
        return self._add(
            ResourceField(
                name=name,
                visibility=as_level(level),
                nested=nested,
                cardinality=cardinality,
            )
        )

    def has_one(self, name: str, nested: ResourceSchema, level: VisibilityLevel | str = VisibilityLevel.PUBLIC) -> ResourceSchemaBuilder:
        """A single nested record (or None), projected with the parent's level."""
        return self._relation(name, nested, level, "one")

    def has_many(self, name: str, nested: ResourceSchema, level: VisibilityLevel | str = VisibilityLevel.PUBLIC) -> ResourceSchemaBuilder:
        """A list of nested records, each projected with the parent's level."""
        return self._relation(name, nested, level, "many")

    def build(self) -> ResourceSchema:
        return ResourceSchema(fields=self.fields)


def resource_schema() -> ResourceSchemaBuilder:
    """Start a new resource schema."""
    return ResourceSchemaBuilder()


def is_resource_schema(value: Any) -> bool:
    return isinstance(value, ResourceSchema)


__all__ = [
    "ResourceField",
    "ResourceSchema",
    "ResourceSchemaBuilder",
    "resource_schema",
    "is_resource_schema",
]
