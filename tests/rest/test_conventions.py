"""
Tests for naming-convention route inference and override resolution.
"""

from __future__ import annotations

import pytest

from proclayer.core.errors import ConstructionError
from proclayer.procedures import procedure
from proclayer.rest.conventions import (
    HttpMethod,
    ParentResource,
    Route,
    check_route_conflicts,
    derive_parent_param,
    extract_path_params,
    infer_method,
    infer_path,
    resolve_route,
    to_template_path,
)


def handler(*, input, ctx):
    return None


class TestInferMethod:
    @pytest.mark.parametrize(
        "name, method",
        [
            ("getUser", HttpMethod.GET),
            ("listUsers", HttpMethod.GET),
            ("findUsers", HttpMethod.GET),
            ("createUser", HttpMethod.POST),
            ("addMember", HttpMethod.POST),
            ("updateUser", HttpMethod.PUT),
            ("editUser", HttpMethod.PUT),
            ("patchUser", HttpMethod.PATCH),
            ("deleteUser", HttpMethod.DELETE),
            ("removeMember", HttpMethod.DELETE),
            ("archiveUser", HttpMethod.POST),
        ],
    )
    def test_prefix_table(self, name, method):
        assert infer_method(name) is method


class TestInferPath:
    @pytest.mark.parametrize(
        "name, path",
        [
            ("listUsers", "/users"),
            ("getUser", "/users/:id"),
            ("updateUser", "/users/:id"),
            ("deleteUser", "/users/:id"),
            ("createUser", "/users"),
            ("findUsers", "/users"),
            ("patchUser", "/users"),
            ("removeUser", "/users"),
            ("archiveUser", "/users"),
        ],
    )
    def test_paths(self, name, path):
        assert infer_path("users", name) == path


class TestResolveRoute:
    def test_inferred(self):
        route = resolve_route("users", "getUser")
        assert route == Route(HttpMethod.GET, "/users/:id", "users", "getUser")

    def test_table_override_full(self):
        routes = {"users": {"getUser": {"method": "POST", "path": "/lookup"}}}
        route = resolve_route("users", "getUser", routes)
        assert (route.method, route.path) == (HttpMethod.POST, "/lookup")

    def test_table_override_bare_path_keeps_inferred_method(self):
        route = resolve_route("users", "getUser", {"users": {"getUser": "/people/:id"}})
        assert (route.method, route.path) == (HttpMethod.GET, "/people/:id")

    def test_table_override_not_blended(self):
        # listUsers would infer /users; the override path is used verbatim
        routes = {"users": {"listUsers": {"method": "get", "path": "/people/:id"}}}
        route = resolve_route("users", "listUsers", routes)
        assert route.path == "/people/:id"

    def test_table_beats_procedure_override(self):
        proc = procedure().rest(method="PATCH", path="/from-builder").mutation(handler)
        routes = {"users": {"updateUser": {"method": "PUT", "path": "/from-table"}}}
        route = resolve_route("users", "updateUser", routes, proc)
        assert (route.method, route.path) == (HttpMethod.PUT, "/from-table")

    def test_procedure_override(self):
        proc = procedure().rest(method="GET", path="/users/search").query(handler)
        route = resolve_route("users", "searchUsers", None, proc)
        assert (route.method, route.path) == (HttpMethod.GET, "/users/search")

    def test_procedure_override_partial(self):
        proc = procedure().rest(path="/me").query(handler)
        route = resolve_route("users", "getMe", None, proc)
        assert (route.method, route.path) == (HttpMethod.GET, "/me")

    def test_exact_key_lookup(self):
        routes = {"users": {"getUser": "/people/:id"}}
        assert resolve_route("posts", "getUser", routes).path == "/posts/:id"

    def test_invalid_override(self):
        with pytest.raises(ConstructionError):
            resolve_route("users", "getUser", {"users": {"getUser": {"method": "GET"}}})
        with pytest.raises(ConstructionError):
            resolve_route("users", "getUser", {"users": {"getUser": {"method": "FETCH", "path": "/x"}}})


class TestPathParams:
    def test_extract_in_order(self):
        assert extract_path_params("/posts/:postId/comments/:id") == ("postId", "id")

    def test_extract_dedup(self):
        assert extract_path_params("/a/:id/b/:id") == ("id",)

    def test_route_property(self):
        assert Route(HttpMethod.GET, "/users/:id").path_params == ("id",)

    def test_template_path(self):
        assert to_template_path("/posts/:postId/comments/:id") == "/posts/{postId}/comments/{id}"


class TestNestedRoutes:
    @pytest.mark.parametrize(
        "name, method, path",
        [
            ("getComment", HttpMethod.GET, "/posts/:postId/comments/:id"),
            ("listComments", HttpMethod.GET, "/posts/:postId/comments"),
            ("createComment", HttpMethod.POST, "/posts/:postId/comments"),
            ("deleteComment", HttpMethod.DELETE, "/posts/:postId/comments/:id"),
        ],
    )
    def test_single_parent(self, name, method, path):
        proc = procedure().parent("posts").query(handler)
        route = resolve_route("comments", name, None, proc)
        assert (route.method, route.path) == (method, path)
        assert route.path_params[0] == "postId"

    def test_several_parents_outermost_first(self):
        proc = procedure().parents(["organizations", ("projects", "projectKey")]).query(handler)
        route = resolve_route("tasks", "getTask", None, proc)
        assert route.path == "/organizations/:organizationId/projects/:projectKey/tasks/:id"
        assert route.path_params == ("organizationId", "projectKey", "id")

    def test_partial_override_keeps_nested_path(self):
        proc = procedure().parent("posts").rest(method="POST").mutation(handler)
        route = resolve_route("comments", "flagComment", None, proc)
        assert (route.method, route.path) == (HttpMethod.POST, "/posts/:postId/comments")

    def test_explicit_path_is_not_prefixed(self):
        proc = procedure().parent("posts").rest(path="/comments/recent").query(handler)
        assert resolve_route("comments", "listComments", None, proc).path == "/comments/recent"

    def test_table_override_is_not_prefixed(self):
        proc = procedure().parent("posts").query(handler)
        routes = {"comments": {"getComment": "/c/:id"}}
        assert resolve_route("comments", "getComment", routes, proc).path == "/c/:id"

    @pytest.mark.parametrize(
        "namespace, param",
        [("posts", "postId"), ("categories", "categoryId"), ("boxes", "boxId"), ("address", "addressId")],
    )
    def test_derive_parent_param(self, namespace, param):
        assert derive_parent_param(namespace) == param


class TestRouteConflicts:
    def test_distinct_routes_pass(self):
        check_route_conflicts(
            [
                resolve_route("users", "getUser"),
                resolve_route("users", "listUsers"),
                resolve_route("users", "createUser"),
                resolve_route("posts", "getPost"),
            ]
        )

    def test_same_method_and_path_names_both(self):
        routes = [resolve_route("users", "getUser"), resolve_route("users", "getProfile")]
        with pytest.raises(ConstructionError) as exc_info:
            check_route_conflicts(routes)
        message = exc_info.value.message
        assert "users.getUser" in message
        assert "users.getProfile" in message
        assert "GET /users/:id" in message
        assert exc_info.value.fix
        assert exc_info.value.context.procedure == "getProfile"

    def test_parameter_names_do_not_disambiguate(self):
        routes = [
            Route(HttpMethod.GET, "/users/:id", "users", "getUser"),
            Route(HttpMethod.GET, "/users/:userId", "people", "getPerson"),
        ]
        with pytest.raises(ConstructionError, match="users.getUser and people.getPerson"):
            check_route_conflicts(routes)

    def test_trailing_slash_collides(self):
        routes = [
            Route(HttpMethod.POST, "/users", "users", "createUser"),
            Route(HttpMethod.POST, "/users/", "users", "addUser"),
        ]
        with pytest.raises(ConstructionError):
            check_route_conflicts(routes)

    def test_same_path_different_method_passes(self):
        check_route_conflicts(
            [resolve_route("users", "getUser"), resolve_route("users", "updateUser")]
        )

    def test_nested_and_flat_routes_do_not_collide(self):
        nested = procedure().parent("posts").query(handler)
        check_route_conflicts(
            [
                resolve_route("comments", "getComment"),
                resolve_route("comments", "getComment", None, nested),
            ]
        )
