"""
Per-request plumbing shared by the REST and RPC routers.

Every dispatched procedure starts from the same base context:
``{"request": Request, "reply": None}``, extended by the application's
optional ``context_factory(request)``. The factory may be sync or async and
may return ``None``.

Usage::

    def auth_context(request):
        token = request.headers.get("Authorization")
        return {"user": lookup_user(token)} if token else None

    app = create_app([users], context_factory=auth_context)
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Union

from fastapi import Request

from proclayer.core.errors import ProcedureValidationError
from proclayer.core.schema import ROOT_FIELD
from proclayer.procedures.context import Context
from proclayer.procedures.registry import ProcedureRouter
from proclayer.procedures.types import ProcedureCollection

ContextFactory = Callable[[Request], Union[Mapping[str, Any], None, Awaitable[Union[Mapping[str, Any], None]]]]


def as_registry(collections: Iterable[ProcedureCollection] | ProcedureRouter) -> ProcedureRouter:
    """Wrap plain collections in a router; a router is used as is."""
    if isinstance(collections, ProcedureRouter):
        return collections
    return ProcedureRouter(collections)


async def build_context(request: Request, context_factory: ContextFactory | None = None) -> Context:
    """Base context for one HTTP request."""
    ctx = Context(request=request, reply=None)
    if context_factory is None:
        return ctx
    extension = context_factory(request)
    if inspect.isawaitable(extension):
        extension = await extension
    return ctx.extend(extension)


def decode_json(raw: str | bytes, *, source: str) -> Any:
    """Parse JSON from a body or query value, as a 400 on malformed input."""
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ProcedureValidationError(
            f"Malformed JSON in {source}",
            fields={ROOT_FIELD: str(e)},
            cause=e,
        ) from e


async def read_json_body(request: Request) -> Any:
    """Decoded JSON body, or ``None`` when the body is empty."""
    raw = await request.body()
    if not raw.strip():
        return None
    return decode_json(raw, source="request body")


def query_values(request: Request) -> dict[str, Any]:
    """Query parameters as a dict; repeated keys become lists."""
    values: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key in values:
            current = values[key]
            values[key] = [*current, value] if isinstance(current, list) else [current, value]
        else:
            values[key] = value
    return values


__all__ = ["ContextFactory", "as_registry", "build_context", "decode_json", "read_json_body", "query_values"]
