"""
Convention-based REST dispatch.

A procedure's HTTP method and path are inferred from its name unless an
override says otherwise:

    =====================  ========  ===================
    name prefix            method    path
    =====================  ========  ===================
    get                    GET       /{namespace}/:id
    list                   GET       /{namespace}
    find                   GET       /{namespace}
    create, add            POST      /{namespace}
    update                 PUT       /{namespace}/:id
    edit                   PUT       /{namespace}
    patch                  PATCH     /{namespace}
    delete                 DELETE    /{namespace}/:id
    remove                 DELETE    /{namespace}
    anything else          POST      /{namespace}
    =====================  ========  ===================

Precedence in :func:`resolve_route`:
    1. Override table ``routes[namespace][name]``, used verbatim. A bare
       path string keeps the inferred method.
    2. The procedure's own ``.rest()`` override; missing parts are inferred.
    3. Inference from the name.

Procedures declared under parent resources (``.parent("posts")``) get the
parents prepended to any inferred path, e.g. ``/posts/:postId/comments/:id``.
Explicit paths are never prefixed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from proclayer.core.errors import ConstructionError

if TYPE_CHECKING:
    from proclayer.procedures.types import CompiledProcedure


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


# first match wins
METHOD_PREFIXES: tuple[tuple[str, HttpMethod], ...] = (
    ("get", HttpMethod.GET),
    ("list", HttpMethod.GET),
    ("find", HttpMethod.GET),
    ("create", HttpMethod.POST),
    ("add", HttpMethod.POST),
    ("update", HttpMethod.PUT),
    ("edit", HttpMethod.PUT),
    ("patch", HttpMethod.PATCH),
    ("delete", HttpMethod.DELETE),
    ("remove", HttpMethod.DELETE),
)

ID_PATH_PREFIXES = ("get", "update", "delete")

PATH_PARAM_PATTERN = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")

RouteOverride = Union[Mapping[str, Any], str, "Route"]
RouteTable = Mapping[str, Mapping[str, RouteOverride]]


@dataclass(frozen=True)
class Route:
    """``{method, path}`` bound to one procedure."""

    method: HttpMethod
    path: str
    namespace: str | None = None
    name: str | None = None

    @property
    def path_params(self) -> tuple[str, ...]:
        return extract_path_params(self.path)


@dataclass(frozen=True)
class ParentResource:
    """An enclosing resource of a nested route, rendered as ``/{namespace}/:{param}``."""

    namespace: str
    param: str


def singularize(word: str) -> str:
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("sses", "xes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def derive_parent_param(namespace: str) -> str:
    """``posts`` -> ``postId``, ``categories`` -> ``categoryId``."""
    return f"{singularize(namespace)}Id"


def nested_prefix(parents: Sequence[ParentResource]) -> str:
    return "".join(f"/{parent.namespace}/:{parent.param}" for parent in parents)


def infer_method(name: str) -> HttpMethod:
    """HTTP method for a procedure name; ``POST`` when no prefix matches."""
    for prefix, method in METHOD_PREFIXES:
        if name.startswith(prefix):
            return method
    return HttpMethod.POST


def infer_path(namespace: str, name: str) -> str:
    """Path for a procedure name without an override."""
    if name.startswith("list"):
        return f"/{namespace}"
    if name.startswith(ID_PATH_PREFIXES):
        return f"/{namespace}/:id"
    return f"/{namespace}"


def _as_method(value: Any) -> HttpMethod:
    try:
        return HttpMethod(str(getattr(value, "value", value)).upper())
    except ValueError as e:
        raise ConstructionError(
            f"Unsupported HTTP method in route override: {value!r}",
            cause=e,
        ) from e


def _from_table(namespace: str, name: str, override: RouteOverride) -> Route:
    if isinstance(override, Route):
        return Route(override.method, override.path, namespace, name)
    if isinstance(override, str):
        return Route(infer_method(name), override, namespace, name)
    if isinstance(override, Mapping) and isinstance(override.get("path"), str) and override.get("method"):
        return Route(_as_method(override["method"]), override["path"], namespace, name)
    raise ConstructionError(
        f"Invalid route override for {namespace}.{name}: {override!r}",
        fix='Use {"method": "GET", "path": "/users/:id"} or a bare path string',
    )


def resolve_route(
    namespace: str,
    name: str,
    routes: RouteTable | None = None,
    procedure: CompiledProcedure | None = None,
) -> Route:
    """Resolve the REST route for ``namespace.name``."""
    override = (routes or {}).get(namespace, {}).get(name)
    if override:
        return _from_table(namespace, name, override)

    parents = procedure.parent_resources if procedure is not None else ()
    inferred_path = nested_prefix(parents) + infer_path(namespace, name)

    rest = procedure.rest_override if procedure is not None else None
    if rest is not None:
        return Route(
            rest.method or infer_method(name),
            rest.path or inferred_path,
            namespace,
            name,
        )

    return Route(infer_method(name), inferred_path, namespace, name)


def route_key(route: Route) -> tuple[HttpMethod, str]:
    """``(method, path)`` with parameter names erased; equal keys collide."""
    path = PATH_PARAM_PATTERN.sub(":", route.path).rstrip("/") or "/"
    return route.method, path


def check_route_conflicts(routes: Iterable[Route]) -> None:
    """Fail when two procedures resolve to the same method and path.

    Raises:
        ConstructionError: Naming both procedures
    """
    seen: dict[tuple[HttpMethod, str], Route] = {}
    for route in routes:
        key = route_key(route)
        other = seen.get(key)
        if other is not None:
            raise ConstructionError(
                f"REST route conflict: {other.namespace}.{other.name} and "
                f"{route.namespace}.{route.name} both resolve to {route.method.value} {route.path}",
                fix="Give one of them an explicit path with .rest(path=...) or a routes-table override",
            ).with_context(namespace=route.namespace, procedure=route.name)
        seen[key] = route


def extract_path_params(path: str) -> tuple[str, ...]:
    """Parameter names in ``path`` in order of appearance, without duplicates."""
    return tuple(dict.fromkeys(PATH_PARAM_PATTERN.findall(path)))


def to_template_path(path: str) -> str:
    """``/users/:id`` → ``/users/{id}`` (FastAPI and OpenAPI path syntax)."""
    return PATH_PARAM_PATTERN.sub(r"{\1}", path)


__all__ = [
    "HttpMethod",
    "Route",
    "ParentResource",
    "RouteOverride",
    "RouteTable",
    "METHOD_PREFIXES",
    "PATH_PARAM_PATTERN",
    "infer_method",
    "infer_path",
    "resolve_route",
    "route_key",
    "check_route_conflicts",
    "derive_parent_param",
    "nested_prefix",
    "singularize",
    "extract_path_params",
    "to_template_path",
]
