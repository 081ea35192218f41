"""
Tests for resource schema construction and tagged views.
"""

from __future__ import annotations

import pytest

from proclayer.core.errors import ConstructionError
from proclayer.resources import (
    ResourceSchema,
    VisibilityLevel,
    is_resource_schema,
    resource_schema,
)

author = resource_schema().public("id").public("name").admin("email").build()

post = (
    resource_schema()
    .public("id")
    .public("title", str)
    .authenticated("draft_notes")
    .admin("moderation_flags")
    .has_one("author", author)
    .has_many("comments", resource_schema().public("body").build(), level="authenticated")
    .build()
)


class TestBuilder:
    def test_fields_in_order(self):
        assert post.field_names == ("id", "title", "draft_notes", "moderation_flags", "author", "comments")

    def test_builder_immutable(self):
        base = resource_schema().public("id")
        extended = base.public("name")
        assert len(base.build().fields) == 1
        assert len(extended.build().fields) == 2

    def test_duplicate_field(self):
        with pytest.raises(ConstructionError, match="Duplicate"):
            resource_schema().public("id").admin("id")

    def test_relation_requires_built_schema(self):
        with pytest.raises(ConstructionError):
            resource_schema().has_one("author", resource_schema().public("id"))  # type: ignore[arg-type]

    def test_relation_metadata(self):
        fields = {f.name: f for f in post.fields}
        assert fields["author"].is_relation and fields["author"].cardinality == "one"
        assert fields["comments"].cardinality == "many"
        assert fields["comments"].visibility is VisibilityLevel.AUTHENTICATED
        assert fields["id"].is_relation is False

    def test_is_resource_schema(self):
        assert is_resource_schema(post) is True
        assert is_resource_schema({"id": "public"}) is False


class TestTaggedViews:
    def test_untagged_by_default(self):
        assert post.level is None
        assert post.is_tagged is False

    def test_views_share_fields(self):
        assert post.public.level is VisibilityLevel.PUBLIC
        assert post.authenticated.level is VisibilityLevel.AUTHENTICATED
        assert post.admin.level is VisibilityLevel.ADMIN
        assert post.public.fields is post.fields
        assert isinstance(post.admin, ResourceSchema)

    def test_views_cached(self):
        assert post.public is post.public

    def test_visible_fields(self):
        names = [f.name for f in post.visible_fields("public")]
        assert names == ["id", "title", "author"]


class TestJsonSchema:
    def test_public_shape(self):
        schema = post.public.json_schema()
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"id", "title", "author"}
        assert schema["properties"]["title"] == {"type": "string"}
        assert set(schema["properties"]["author"]["properties"]) == {"id", "name"}

    def test_admin_default_for_untagged(self):
        schema = post.json_schema()
        assert schema["properties"]["comments"]["type"] == "array"
        assert "email" in schema["properties"]["author"]["properties"]
