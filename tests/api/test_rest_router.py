"""
Tests for convention-based REST dispatch over HTTP.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from proclayer.api import create_app, create_rest_router
from proclayer.procedures import define_procedures, procedure
from proclayer.wire import ProcedureCall, WireConfig, build_request


class CommentRef(BaseModel):
    postId: str
    id: str
    include: str | None = None


class CommentUpdate(BaseModel):
    postId: str
    id: str
    text: str


class PostSearch(BaseModel):
    tags: list[str] = []
    q: str | None = None


COMMENT_ROUTES = {
    "posts": {
        "getComment": {"method": "GET", "path": "/posts/:postId/comments/:id"},
        "updateComment": {"method": "PUT", "path": "/posts/:postId/comments/:id"},
    }
}


@pytest.fixture
def posts_collection():
    return define_procedures(
        "posts",
        {
            "getComment": procedure().input(CommentRef).query(lambda *, input, ctx: input.model_dump()),
            "updateComment": procedure()
            .input(CommentUpdate)
            .mutation(lambda *, input, ctx: input.model_dump()),
            "findPosts": procedure().input(PostSearch).query(lambda *, input, ctx: input.model_dump()),
            "archivePost": procedure().mutation(lambda *, input, ctx: {"received": input}),
        },
    )


def auth_context(request):
    role = request.headers.get("X-Role")
    if role is None:
        return None
    return {"user": {"id": "1"}, "roles": [role]}


@pytest.fixture
def client(users_collection):
    return TestClient(create_app([users_collection], context_factory=auth_context))


class TestConventionRoutes:
    def test_get_by_id_projects_public_fields(self, client):
        response = client.get("/api/users/1")
        assert response.status_code == 200
        assert response.json() == {"id": "1", "name": "Ada"}

    def test_list(self, client):
        response = client.get("/api/users")
        assert response.status_code == 200
        assert [u["name"] for u in response.json()] == ["Ada", "Grace"]
        assert all("email" not in u for u in response.json())

    def test_create_returns_201(self, client):
        response = client.post("/api/users", json={"name": "Linus", "email": "l@example.com"})
        assert response.status_code == 201
        assert response.json() == {"id": "3", "name": "Linus"}

    def test_delete_requires_role(self, client):
        response = client.delete("/api/users/1")
        assert response.status_code == 403
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["code"] == "FORBIDDEN"
        assert body["detail"] == "Required role: admin"
        assert body["instance"] == "/api/users/1"

    def test_delete_with_role(self, client):
        response = client.delete("/api/users/2", headers={"X-Role": "admin"})
        assert response.status_code == 200
        assert response.json() == {"deleted": "2"}

    def test_guard_access_level_widens_projection(self, client):
        anonymous = client.get("/api/users/1/profile")
        assert anonymous.status_code == 401
        assert anonymous.json()["code"] == "UNAUTHORIZED"

        signed_in = client.get("/api/users/1/profile", headers={"X-Role": "member"})
        assert signed_in.status_code == 200
        assert signed_in.json() == {"id": "1", "name": "Ada", "email": "ada@example.com"}


class TestInputAssembly:
    @pytest.fixture
    def posts_client(self, posts_collection):
        return TestClient(create_app([posts_collection], routes=COMMENT_ROUTES))

    def test_path_and_query_merge_for_get(self, posts_client):
        response = posts_client.get("/api/posts/p1/comments/c9", params={"include": "author"})
        assert response.json() == {"postId": "p1", "id": "c9", "include": "author"}

    def test_repeated_query_keys_become_lists(self, posts_client):
        response = posts_client.get("/api/posts?tags=python&tags=web&q=async")
        assert response.json() == {"tags": ["python", "web"], "q": "async"}

    def test_path_params_win_over_body(self, posts_client):
        response = posts_client.put(
            "/api/posts/p1/comments/c9",
            json={"postId": "other", "id": "other", "text": "edited"},
        )
        assert response.status_code == 200
        assert response.json() == {"postId": "p1", "id": "c9", "text": "edited"}

    def test_non_object_body_without_path_params_passes_through(self, posts_client):
        response = posts_client.post("/api/posts", json=[1, 2, 3])
        assert response.status_code == 201
        assert response.json() == {"received": [1, 2, 3]}

    def test_empty_body_is_none(self, posts_client):
        assert posts_client.post("/api/posts").json() == {"received": None}

    def test_non_object_body_with_path_params_is_400(self, posts_client):
        response = posts_client.put("/api/posts/p1/comments/c9", json=["x"])
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "_root"


class TestWireRoundTrip:
    @pytest.mark.parametrize(
        "call, expected",
        [
            (
                ProcedureCall("posts", "getComment", {"postId": "p1", "id": "c9", "include": "author"}),
                {"postId": "p1", "id": "c9", "include": "author"},
            ),
            (
                ProcedureCall("posts", "updateComment", {"postId": "p1", "id": "c9", "text": "hi"}),
                {"postId": "p1", "id": "c9", "text": "hi"},
            ),
        ],
    )
    def test_rest_descriptor_reaches_handler(self, posts_collection, call, expected):
        client = TestClient(create_app([posts_collection], routes=COMMENT_ROUTES))
        config = WireConfig(base_url="http://testserver/api", routes=COMMENT_ROUTES)
        descriptor = build_request(call, config)
        response = client.request(
            descriptor.method,
            descriptor.url,
            headers=descriptor.headers,
            content=descriptor.body,
        )
        assert response.status_code == 200
        assert response.json() == expected

    def test_delete_descriptor_reaches_handler(self, users_collection):
        client = TestClient(create_app([users_collection], context_factory=auth_context))
        config = WireConfig(base_url="http://testserver/api", headers={"X-Role": "admin"})
        descriptor = build_request(ProcedureCall("users", "deleteUser", {"id": "1"}), config)
        assert descriptor.method == "DELETE"
        response = client.request(
            descriptor.method,
            descriptor.url,
            headers=descriptor.headers,
            content=descriptor.body,
        )
        assert response.json() == {"deleted": "1"}


class TestStandaloneRouter:
    def test_mount_on_existing_app(self, users_collection):
        app = FastAPI()
        app.include_router(create_rest_router([users_collection]), prefix="/v2")
        client = TestClient(app)
        assert client.get("/v2/users/2").json() == {"id": "2", "name": "Grace"}

    def test_async_context_factory(self, users_collection):
        async def factory(request):
            return {"user": {"id": "9"}}

        app = FastAPI()
        app.include_router(create_rest_router([users_collection], context_factory=factory))
        client = TestClient(app)
        assert client.get("/users/1/profile").status_code == 200


NESTED_CLIENT_ROUTES = {"comments": {"getComment": "/posts/:postId/comments/:id"}}


@pytest.fixture
def comments_collection():
    return define_procedures(
        "comments",
        {
            "getComment": procedure()
            .parent("posts")
            .input(CommentRef)
            .query(lambda *, input, ctx: input.model_dump()),
            "listComments": procedure().parent("posts").query(lambda *, input, ctx: {"post": input["postId"]}),
            "createComment": procedure().parent("posts").mutation(lambda *, input, ctx: input),
        },
    )


class TestNestedResources:
    @pytest.fixture
    def comments_client(self, comments_collection):
        return TestClient(create_app([comments_collection]))

    def test_get_under_parent(self, comments_client):
        response = comments_client.get("/api/posts/p1/comments/c9")
        assert response.status_code == 200
        assert response.json() == {"postId": "p1", "id": "c9", "include": None}

    def test_list_under_parent(self, comments_client):
        assert comments_client.get("/api/posts/p1/comments").json() == {"post": "p1"}

    def test_create_merges_parent_param_into_body(self, comments_client):
        response = comments_client.post("/api/posts/p1/comments", json={"text": "hi"})
        assert response.status_code == 201
        assert response.json() == {"text": "hi", "postId": "p1"}

    def test_flat_path_is_not_served(self, comments_client):
        assert comments_client.get("/api/comments/c9").status_code == 404

    def test_wire_descriptor_reaches_nested_route(self, comments_client):
        config = WireConfig(base_url="http://testserver/api", routes=NESTED_CLIENT_ROUTES)
        descriptor = build_request(
            ProcedureCall("comments", "getComment", {"postId": "p1", "id": "c9"}), config
        )
        assert descriptor.url == "http://testserver/api/posts/p1/comments/c9"
        response = comments_client.request(descriptor.method, descriptor.url, headers=descriptor.headers)
        assert response.json() == {"postId": "p1", "id": "c9", "include": None}
