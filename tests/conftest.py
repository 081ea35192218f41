"""
Shared pytest fixtures for proclayer tests.

This module provides:
- Settings cache isolation
- Sample pydantic models and guards
- A small ``users``/``posts`` procedure pair used across test modules
- A helper for writing procedure modules into a temporary directory
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest
from pydantic import BaseModel

from proclayer.core.settings import get_settings
from proclayer.procedures import define_guard, define_procedures, procedure
from proclayer.resources import resource_schema


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached per process; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ── Models ───────────────────────────────────────────────────────────────


class UserId(BaseModel):
    id: str


class CreateUser(BaseModel):
    name: str
    email: str


class UserOut(BaseModel):
    id: str
    name: str


# ── Guards ───────────────────────────────────────────────────────────────


def has_role(role: str):
    return define_guard(
        f"hasRole:{role}",
        lambda ctx, request, reply: role in (ctx.get("roles") or ()),
        message=f"Required role: {role}",
    )


def has_permission(permission: str):
    return define_guard(
        f"hasPermission:{permission}",
        lambda ctx, request, reply: permission in (ctx.get("permissions") or ()),
    )


authenticated = define_guard(
    "authenticated",
    lambda ctx, request, reply: ctx.get("user") is not None,
    status_code=401,
    access_level="authenticated",
)


# ── Sample data ──────────────────────────────────────────────────────────

USERS: dict[str, dict[str, Any]] = {
    "1": {"id": "1", "name": "Ada", "email": "ada@example.com", "password_hash": "x1"},
    "2": {"id": "2", "name": "Grace", "email": "grace@example.com", "password_hash": "x2"},
}

user_resource = (
    resource_schema()
    .public("id")
    .public("name")
    .authenticated("email")
    .admin("password_hash")
    .build()
)


@pytest.fixture
def users_collection():
    async def get_user(*, input, ctx):
        return USERS[input.id]

    async def list_users(*, input, ctx):
        return list(USERS.values())

    async def create_user(*, input, ctx):
        return {"id": "3", "name": input.name}

    def delete_user(*, input, ctx):
        return {"deleted": input.id}

    return define_procedures(
        "users",
        {
            "getUser": procedure().input(UserId).resource(user_resource.public).query(get_user),
            "getProfile": procedure()
            .input(UserId)
            .guard(authenticated)
            .resource(user_resource)
            .rest(path="/users/:id/profile")
            .query(get_user),
            "listUsers": procedure().resource(user_resource.public).query(list_users),
            "createUser": procedure().input(CreateUser).output(UserOut).mutation(create_user),
            "deleteUser": procedure().input(UserId).guard(has_role("admin")).mutation(delete_user),
        },
    )


@pytest.fixture
def write_module(tmp_path: Path) -> Callable[..., Path]:
    """Write ``source`` (dedented) to ``tmp_path / relative`` and return the path."""

    def write(relative: str, source: str) -> Path:
        target = tmp_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(source), encoding="utf-8")
        return target

    return write
