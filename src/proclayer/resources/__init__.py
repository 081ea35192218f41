"""Resource schemas and visibility projection."""

from proclayer.resources.projection import Resource, ResourceCollection, infer_level, project
from proclayer.resources.schema import (
    ResourceField,
    ResourceSchema,
    ResourceSchemaBuilder,
    is_resource_schema,
    resource_schema,
)
from proclayer.resources.visibility import VisibilityLevel, is_visible_at

__all__ = [
    "VisibilityLevel",
    "is_visible_at",
    "ResourceField",
    "ResourceSchema",
    "ResourceSchemaBuilder",
    "resource_schema",
    "is_resource_schema",
    "project",
    "infer_level",
    "Resource",
    "ResourceCollection",
]
