"""
REST router: one FastAPI route per procedure, at its resolved REST route.

Endpoints:
    Whatever :func:`resolve_route` yields for each procedure, e.g.::

        GET    /users/{id}     users.getUser
        GET    /users          users.listUsers
        POST   /users          users.createUser   (201)
        PATCH  /users/{id}     users.updateUser

Input assembly:
    - GET: query parameters merged with path parameters
    - DELETE: like POST, plus any query parameters under the body fields
    - POST / PUT / PATCH: JSON body merged with path parameters; path
      parameters win on conflict. A non-object body is passed through
      untouched when the route has no path parameters.

Tags:
    proclayer, api, rest, router, convention
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from proclayer.api.deps import ContextFactory, as_registry, build_context, query_values, read_json_body
from proclayer.core.errors import ProcedureValidationError
from proclayer.core.schema import ROOT_FIELD
from proclayer.procedures.registry import ProcedureRouter
from proclayer.procedures.types import ProcedureCollection
from proclayer.rest.conventions import HttpMethod, Route, RouteTable, to_template_path


def _success_status(method: HttpMethod) -> int:
    return 201 if method is HttpMethod.POST else 200


async def assemble_input(request: Request, route: Route) -> Any:
    """Build the raw procedure input from path, query and body."""
    path_values = {name: request.path_params[name] for name in route.path_params if name in request.path_params}

    if route.method is HttpMethod.GET:
        return {**query_values(request), **path_values}

    body = await read_json_body(request)
    if route.method is HttpMethod.DELETE and request.query_params:
        if body is None:
            body = {}
        if isinstance(body, dict):
            body = {**query_values(request), **body}
    if not path_values:
        return body
    if body is None:
        return path_values
    if not isinstance(body, dict):
        raise ProcedureValidationError(
            "Request body must be a JSON object when the route has path parameters",
            fields={ROOT_FIELD: f"expected object, got {type(body).__name__}"},
        )
    return {**body, **path_values}


def _endpoint(registry: ProcedureRouter, route: Route, context_factory: ContextFactory | None):
    namespace, name = route.namespace, route.name

    async def endpoint(request: Request) -> JSONResponse:
        raw_input = await assemble_input(request, route)
        ctx = await build_context(request, context_factory)
        output = await registry.call(namespace, name, raw_input, ctx)
        return JSONResponse(content=jsonable_encoder(output), status_code=_success_status(route.method))

    endpoint.__name__ = f"{namespace}_{name}"
    return endpoint


def create_rest_router(
    collections: Iterable[ProcedureCollection] | ProcedureRouter,
    routes: RouteTable | None = None,
    *,
    context_factory: ContextFactory | None = None,
) -> APIRouter:
    """Build an :class:`APIRouter` exposing every procedure at its REST route.

    Raises:
        ConstructionError: On duplicate namespaces
    """
    registry = as_registry(collections)
    router = APIRouter()
    for route in registry.routes(routes):
        router.add_api_route(
            to_template_path(route.path),
            _endpoint(registry, route, context_factory),
            methods=[route.method.value],
            name=f"{route.namespace}.{route.name}",
            include_in_schema=False,
        )
    return router


__all__ = ["create_rest_router", "assemble_input"]
