"""
Tests for the fluent procedure builder and define_procedures.
"""

from __future__ import annotations

import pytest
from pydantic import BaseModel
from structlog.testing import capture_logs

from conftest import has_role
from proclayer.core.errors import ConstructionError
from proclayer.core.schema import PydanticSchema
from proclayer.procedures import (
    CompiledProcedure,
    HttpMethod,
    ProcedureCollection,
    ProcedureKind,
    define_procedures,
    is_compiled_procedure,
    is_procedure_collection,
    procedure,
    procedures,
)
from proclayer.procedures.naming import WarningConfig
from proclayer.resources import resource_schema
from proclayer.rest.conventions import ParentResource


class Input(BaseModel):
    id: str


def handler(*, input, ctx):
    return input


async def passthrough(*, input, ctx, next):
    return await next()


class TestBuilderImmutability:
    def test_steps_return_new_builders(self):
        base = procedure()
        with_input = base.input(Input)
        assert with_input is not base
        assert base.input_schema is None
        assert isinstance(with_input.input_schema, PydanticSchema)

    def test_shared_template(self):
        authed = procedure().use(passthrough).guard(has_role("admin"))
        first = authed.input(Input).query(handler)
        second = authed.mutation(handler)
        assert first.input_schema is not None
        assert second.input_schema is None
        assert first.guards == second.guards
        assert len(authed.middlewares) == 1

    def test_middleware_order_preserved(self):
        async def a(*, input, ctx, next):
            return await next()

        async def b(*, input, ctx, next):
            return await next()

        compiled = procedure().use(a).use(b).query(handler)
        assert compiled.middlewares == (a, b)

    def test_guards_appends_several(self):
        g1, g2 = has_role("a"), has_role("b")
        compiled = procedure().guard(g1).guards(g2).query(handler)
        assert [g.name for g in compiled.guards] == ["hasRole:a", "hasRole:b"]


class TestTerminals:
    def test_query_and_mutation_kinds(self):
        assert procedure().query(handler).type is ProcedureKind.QUERY
        assert procedure().mutation(handler).type is ProcedureKind.MUTATION
        assert procedure().query(handler).is_query is True

    def test_compiled_carries_state(self):
        schema = resource_schema().public("id").build()
        compiled = (
            procedure()
            .input(Input)
            .output(Input)
            .deprecated("Use getUserV2")
            .resource(schema)
            .rest(method="get", path="/users/:id/v1")
            .query(handler)
        )
        assert isinstance(compiled, CompiledProcedure)
        assert compiled.deprecated is True
        assert compiled.deprecation_message == "Use getUserV2"
        assert compiled.resource_schema is schema
        assert compiled.rest_override.method is HttpMethod.GET
        assert compiled.rest_override.path == "/users/:id/v1"
        assert compiled.rest_override.is_complete is True

    def test_double_terminal_raises(self):
        builder = procedure().input(Input)
        builder.query(handler)
        with pytest.raises(ConstructionError, match="already compiled"):
            builder.mutation(handler)

    def test_branch_after_terminal_is_allowed(self):
        builder = procedure()
        builder.query(handler)
        assert is_compiled_procedure(builder.input(Input).query(handler))

    def test_handler_must_be_callable(self):
        with pytest.raises(ConstructionError):
            procedure().query("not callable")  # type: ignore[arg-type]

    def test_compiled_is_frozen(self):
        compiled = procedure().query(handler)
        with pytest.raises(AttributeError):
            compiled.deprecated = True  # type: ignore[misc]


class TestStepValidation:
    def test_use_requires_callable(self):
        with pytest.raises(ConstructionError):
            procedure().use(42)  # type: ignore[arg-type]

    def test_resource_requires_schema(self):
        with pytest.raises(ConstructionError):
            procedure().resource({"id": "public"})  # type: ignore[arg-type]

    def test_rest_validation(self):
        with pytest.raises(ConstructionError):
            procedure().rest()
        with pytest.raises(ConstructionError):
            procedure().rest(method="FETCH")
        with pytest.raises(ConstructionError):
            procedure().rest(path="users")

    def test_rest_partial(self):
        override = procedure().rest(path="/me").query(handler).rest_override
        assert override.method is None
        assert override.is_complete is False


class TestParentResources:
    def test_parent_derives_param(self):
        proc = procedure().parent("posts").query(handler)
        assert proc.parent_resources == (ParentResource("posts", "postId"),)

    def test_parent_explicit_param_and_slashes(self):
        proc = procedure().parent("/posts/", "slug").query(handler)
        assert proc.parent_resources == (ParentResource("posts", "slug"),)

    def test_parent_replaces_earlier_parents(self):
        proc = procedure().parents(["users", "posts"]).parent("threads").query(handler)
        assert [p.namespace for p in proc.parent_resources] == ["threads"]

    def test_parents_accepts_mixed_forms(self):
        proc = (
            procedure()
            .parents(["organizations", ("projects", "projectKey"), {"resource": "boards"}])
            .query(handler)
        )
        assert proc.parent_resources == (
            ParentResource("organizations", "organizationId"),
            ParentResource("projects", "projectKey"),
            ParentResource("boards", "boardId"),
        )

    def test_parent_is_a_new_builder(self):
        base = procedure()
        nested = base.parent("posts")
        assert base.parent_resources == ()
        assert nested is not base
        assert base.query(handler).parent_resources == ()

    @pytest.mark.parametrize(
        "step",
        [
            lambda b: b.parent(""),
            lambda b: b.parent("/"),
            lambda b: b.parent("posts", "post-id"),
            lambda b: b.parents([]),
            lambda b: b.parents([42]),
            lambda b: b.parents([("posts",)]),
            lambda b: b.parents([{"param": "postId"}]),
        ],
    )
    def test_invalid_parents(self, step):
        with pytest.raises(ConstructionError):
            step(procedure())


class TestDefineProcedures:
    def test_groups_under_namespace(self):
        get_user = procedure().query(handler)
        collection = define_procedures("users", {"getUser": get_user})
        assert isinstance(collection, ProcedureCollection)
        assert collection.namespace == "users"
        assert collection.procedures["getUser"] is get_user
        assert is_procedure_collection(collection)
        assert procedures is define_procedures

    def test_procedures_are_read_only_copy(self):
        source = {"getUser": procedure().query(handler)}
        collection = define_procedures("users", source)
        source["listUsers"] = procedure().query(handler)
        assert "listUsers" not in collection.procedures
        with pytest.raises(TypeError):
            collection.procedures["x"] = procedure().query(handler)  # type: ignore[index]

    def test_iteration_and_len(self):
        collection = define_procedures(
            "users",
            {"getUser": procedure().query(handler), "listUsers": procedure().query(handler)},
        )
        assert len(collection) == 2
        assert [name for name, _ in collection] == ["getUser", "listUsers"]

    @pytest.mark.parametrize("namespace", ["", "   ", None])
    def test_invalid_namespace(self, namespace):
        with pytest.raises(ConstructionError):
            define_procedures(namespace, {})  # type: ignore[arg-type]

    def test_uncompiled_builder_rejected(self):
        with pytest.raises(ConstructionError, match="never compiled"):
            define_procedures("users", {"getUser": procedure().input(Input)})

    def test_arbitrary_value_rejected(self):
        with pytest.raises(ConstructionError) as exc_info:
            define_procedures("users", {"getUser": handler})
        assert exc_info.value.context.procedure == "getUser"

    def test_is_procedure_collection_rejects_lookalikes(self):
        assert is_procedure_collection({"namespace": "users", "procedures": {}}) is False
        assert is_procedure_collection(None) is False


class TestNamingWarnings:
    def test_warns_on_unconventional_name(self):
        with capture_logs() as logs:
            define_procedures("users", {"fetchUser": procedure().query(handler)})
        warnings = [e for e in logs if e["event"] == "procedure.naming_convention"]
        assert len(warnings) == 1
        assert warnings[0]["procedure"] == "fetchUser"
        assert warnings[0]["warning_type"] == "similar-name"
        assert warnings[0]["log_level"] == "warning"

    def test_conventional_names_are_quiet(self):
        with capture_logs() as logs:
            define_procedures(
                "users",
                {"getUser": procedure().query(handler), "createUser": procedure().mutation(handler)},
            )
        assert not [e for e in logs if e["event"] == "procedure.naming_convention"]

    def test_strict_raises(self):
        with pytest.raises(ConstructionError, match="createUser"):
            define_procedures("users", {"createUser": procedure().query(handler)}, warnings="strict")

    def test_disabled(self):
        with capture_logs() as logs:
            define_procedures("users", {"fetchUser": procedure().query(handler)}, warnings=False)
        assert logs == []

    def test_except_list(self):
        config = WarningConfig(strict=True, except_={"fetchUser"})
        collection = define_procedures("users", {"fetchUser": procedure().query(handler)}, warnings=config)
        assert "fetchUser" in collection.procedures

    def test_complete_rest_override_skipped(self):
        proc = procedure().rest(method="GET", path="/users/search").query(handler)
        define_procedures("users", {"searchUsers": proc}, warnings="strict")

    def test_partial_rest_override_still_checked(self):
        proc = procedure().rest(path="/users/search").query(handler)
        with pytest.raises(ConstructionError):
            define_procedures("users", {"searchUsers": proc}, warnings="strict")

    def test_skipped_in_production(self, monkeypatch):
        from proclayer.core.settings import get_settings

        monkeypatch.setenv("PROCLAYER_ENVIRONMENT", "production")
        get_settings.cache_clear()
        define_procedures("users", {"fetchUser": procedure().query(handler)}, warnings="strict")

    def test_default_from_settings(self, monkeypatch):
        from proclayer.core.settings import get_settings

        monkeypatch.setenv("PROCLAYER_NAMING_WARNINGS", "strict")
        get_settings.cache_clear()
        with pytest.raises(ConstructionError):
            define_procedures("users", {"fetchUser": procedure().query(handler)})
