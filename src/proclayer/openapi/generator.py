"""
OpenAPI 3.0.3 document generation from procedure collections.

One operation per procedure, at the route :func:`resolve_route` gives it.
Input fields become path parameters, query parameters (GET/DELETE) or the
JSON request body (POST/PUT/PATCH); guarded procedures get bearer security
and 401/403 responses; deprecated procedures are flagged with their message.
Error responses reference the RFC 7807 ``ProblemDetail`` schema the HTTP
adapter returns.

Examples:
    >>> doc = generate_openapi([users], title="Users API", version="1.0.0")
    >>> doc["paths"]["/api/users/{id}"]["get"]["operationId"]
    'users_getUser'
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from proclayer.core.schema import json_schema_of
from proclayer.procedures.types import CompiledProcedure, ProcedureCollection
from proclayer.rest.conventions import (
    HttpMethod,
    Route,
    RouteTable,
    check_route_conflicts,
    resolve_route,
    to_template_path,
)

OPENAPI_VERSION = "3.0.3"
COMPONENT_REF_TEMPLATE = "#/components/schemas/{model}"
BEARER_SCHEME = "bearerAuth"

BODY_METHODS = (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)
NOT_FOUND_METHODS = (HttpMethod.GET, HttpMethod.PUT, HttpMethod.PATCH, HttpMethod.DELETE)

PROBLEM_DETAIL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "example": "about:blank"},
        "title": {"type": "string"},
        "status": {"type": "integer"},
        "detail": {"type": "string"},
        "instance": {"type": "string"},
        "code": {"type": "string", "example": "VALIDATION_ERROR"},
        "errors": {"type": "array", "items": {"type": "object"}},
    },
    "required": ["type", "title", "status"],
}


def _problem_response(description: str) -> dict[str, Any]:
    return {
        "description": description,
        "content": {
            "application/problem+json": {
                "schema": {"$ref": "#/components/schemas/ProblemDetail"},
            }
        },
    }


def infer_summary(name: str) -> str:
    """``getUserById`` → ``Get user by id``."""
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", name).replace("_", " ").lower().split()
    return " ".join(words).capitalize()


def join_paths(prefix: str, path: str) -> str:
    joined = f"/{prefix.strip('/')}/{path.lstrip('/')}" if prefix.strip("/") else path
    return joined.rstrip("/") or "/"


def _hoist_defs(node: Any, components: dict[str, Any]) -> Any:
    """Move nested ``$defs`` into ``components`` and point refs at them."""
    if isinstance(node, dict):
        defs = node.pop("$defs", None)
        if defs:
            for def_name, definition in defs.items():
                components.setdefault(def_name, _hoist_defs(definition, components))
        for key, value in list(node.items()):
            if key == "$ref" and isinstance(value, str) and value.startswith("#/$defs/"):
                node[key] = value.replace("#/$defs/", "#/components/schemas/", 1)
            else:
                node[key] = _hoist_defs(value, components)
        return node
    if isinstance(node, list):
        return [_hoist_defs(item, components) for item in node]
    return node


def _schema_json(schema: Any, components: dict[str, Any]) -> dict[str, Any] | None:
    raw = json_schema_of(schema, ref_template=COMPONENT_REF_TEMPLATE)
    if raw is None:
        return None
    return _hoist_defs(copy.deepcopy(raw), components)


def _object_fields(schema: Mapping[str, Any] | None) -> tuple[dict[str, Any], set[str]]:
    if not schema or schema.get("type") != "object":
        return {}, set()
    return dict(schema.get("properties") or {}), set(schema.get("required") or ())


def _parameters(route: Route, input_json: dict[str, Any] | None) -> list[dict[str, Any]]:
    properties, required = _object_fields(input_json)
    params: list[dict[str, Any]] = []
    path_names = route.path_params
    for name in path_names:
        params.append(
            {
                "name": name,
                "in": "path",
                "required": True,
                "schema": properties.get(name, {"type": "string"}),
            }
        )
    if route.method in (HttpMethod.GET, HttpMethod.DELETE):
        for name, prop in properties.items():
            if name in path_names:
                continue
            params.append(
                {
                    "name": name,
                    "in": "query",
                    "required": name in required,
                    "schema": prop,
                }
            )
    return params


def _request_body(route: Route, input_json: dict[str, Any] | None) -> dict[str, Any] | None:
    if route.method not in BODY_METHODS or input_json is None:
        return None
    body = copy.deepcopy(input_json)
    if body.get("type") == "object":
        props = {k: v for k, v in (body.get("properties") or {}).items() if k not in route.path_params}
        if not props:
            return None
        body["properties"] = props
        if "required" in body:
            body["required"] = [r for r in body["required"] if r not in route.path_params]
            if not body["required"]:
                del body["required"]
    return {"required": True, "content": {"application/json": {"schema": body}}}


def _success_code(method: HttpMethod) -> str:
    return "201" if method is HttpMethod.POST else "200"


def _output_json(proc: CompiledProcedure, components: dict[str, Any]) -> dict[str, Any] | None:
    if proc.resource_schema is not None:
        return _hoist_defs(proc.resource_schema.json_schema(), components)
    return _schema_json(proc.output_schema, components)


def _operation(
    namespace: str,
    name: str,
    proc: CompiledProcedure,
    route: Route,
    components: dict[str, Any],
) -> dict[str, Any]:
    input_json = _schema_json(proc.input_schema, components)
    output_json = _output_json(proc, components)
    guarded = bool(proc.guards)

    success: dict[str, Any] = {"description": "Successful response"}
    if output_json is not None:
        success["content"] = {"application/json": {"schema": output_json}}

    responses: dict[str, Any] = {_success_code(route.method): success}
    responses["400"] = _problem_response("Bad Request - Validation error")
    if guarded:
        responses["401"] = _problem_response("Unauthorized - Authentication required")
        responses["403"] = _problem_response("Forbidden - Insufficient permissions")
    if route.method in NOT_FOUND_METHODS:
        responses["404"] = _problem_response("Not Found - Resource does not exist")
    responses["500"] = _problem_response("Internal Server Error")

    operation: dict[str, Any] = {
        "operationId": f"{namespace}_{name}",
        "summary": infer_summary(name),
        "tags": [namespace],
    }
    parameters = _parameters(route, input_json)
    if parameters:
        operation["parameters"] = parameters
    body = _request_body(route, input_json)
    if body:
        operation["requestBody"] = body
    operation["responses"] = responses
    if guarded:
        operation["security"] = [{BEARER_SCHEME: []}]
    if proc.deprecated:
        operation["deprecated"] = True
        if proc.deprecation_message:
            operation["description"] = proc.deprecation_message
            operation["x-deprecation-message"] = proc.deprecation_message
    return operation


def generate_openapi(
    collections: Iterable[ProcedureCollection],
    *,
    title: str,
    version: str,
    prefix: str = "/api",
    routes: RouteTable | None = None,
    servers: Sequence[Mapping[str, Any]] | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Build an OpenAPI 3.0.3 document describing every procedure's REST route.

    Raises:
        ConstructionError: If two procedures resolve to the same method and path
    """
    paths: dict[str, dict[str, Any]] = {}
    tags: list[dict[str, Any]] = []
    schemas: dict[str, Any] = {"ProblemDetail": copy.deepcopy(PROBLEM_DETAIL_SCHEMA)}
    any_guarded = False

    resolved: list[tuple[str, str, CompiledProcedure, Route]] = []
    for collection in collections:
        tags.append({"name": collection.namespace})
        for name, proc in collection.procedures.items():
            route = resolve_route(collection.namespace, name, routes, proc)
            resolved.append((collection.namespace, name, proc, route))
    check_route_conflicts(route for *_, route in resolved)

    for namespace, name, proc, route in resolved:
        path = to_template_path(join_paths(prefix, route.path))
        paths.setdefault(path, {})[route.method.value.lower()] = _operation(namespace, name, proc, route, schemas)
        any_guarded = any_guarded or bool(proc.guards)

    info: dict[str, Any] = {"title": title, "version": version}
    if description:
        info["description"] = description

    document: dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": info,
        "paths": paths,
        "tags": tags,
    }
    if servers:
        document["servers"] = [dict(server) for server in servers]

    components: dict[str, Any] = {"schemas": schemas}
    if any_guarded:
        components["securitySchemes"] = {
            BEARER_SCHEME: {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        }
    document["components"] = components
    return document


__all__ = ["generate_openapi", "infer_summary", "join_paths", "OPENAPI_VERSION"]
