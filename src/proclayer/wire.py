"""
Dual-protocol wire builder.

Builds a transport-neutral :class:`RequestDescriptor` for one procedure call,
either REST-shaped (method and path from naming conventions) or RPC-shaped
(one path per procedure, ``{namespace}.{name}``, compatible with tRPC's
HTTP convention). Nothing here performs network I/O.

Examples:
    >>> config = WireConfig(base_url="https://api.example.com/trpc")
    >>> req = build_request(ProcedureCall("users", "getUser", {"id": "1"}), config)
    >>> req.method, req.url
    ('GET', 'https://api.example.com/trpc/users.getUser?input=%7B%22id%22%3A%221%22%7D')

    >>> config = WireConfig(base_url="https://api.example.com/api")
    >>> build_request(ProcedureCall("users", "getUser", {"id": "1"}), config).url
    'https://api.example.com/api/users/1'
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union
from urllib.parse import quote

from proclayer.rest.conventions import RouteTable, resolve_route
from proclayer.rest.requests import build_rest_request

RPC_SUFFIX = "/trpc"
QUERY_PREFIXES = ("get", "list", "find")

HeadersOption = Union[Mapping[str, str], Callable[[], Mapping[str, str]], None]


class WireMode(str, Enum):
    REST = "rest"
    RPC = "rpc"


@dataclass(frozen=True)
class WireConfig:
    """Where and how to address procedures.

    ``mode`` None means auto-detect from ``base_url``. ``headers`` may be a
    mapping or a zero-argument callable evaluated per request.
    """

    base_url: str
    mode: WireMode | None = None
    routes: RouteTable | None = None
    headers: HeadersOption = None


@dataclass(frozen=True)
class ProcedureCall:
    namespace: str
    procedure_name: str
    input: Any = None


@dataclass(frozen=True)
class RequestDescriptor:
    """A request ready to hand to any HTTP client. ``body`` is JSON text or None."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    def json(self) -> Any:
        return json.loads(self.body) if self.body is not None else None


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def detect_mode(config: WireConfig) -> WireMode:
    """Explicit mode wins; otherwise RPC iff ``base_url`` ends with ``/trpc``."""
    if config.mode is not None:
        return WireMode(config.mode)
    return WireMode.RPC if config.base_url.rstrip("/").endswith(RPC_SUFFIX) else WireMode.REST


def is_query_procedure(name: str) -> bool:
    """RPC queries travel as GET; everything else is a POST mutation."""
    return name.startswith(QUERY_PREFIXES)


def _headers(config: WireConfig) -> dict[str, str]:
    custom = config.headers() if callable(config.headers) else (config.headers or {})
    return {"Content-Type": "application/json", **custom}


def _build_rpc(call: ProcedureCall, base_url: str, headers: dict[str, str]) -> RequestDescriptor:
    url = f"{base_url}/{call.namespace}.{call.procedure_name}"
    if is_query_procedure(call.procedure_name):
        if call.input is not None:
            url = f"{url}?input={quote(_dumps(call.input), safe='')}"
        return RequestDescriptor("GET", url, headers)
    body = _dumps(call.input) if call.input is not None else None
    return RequestDescriptor("POST", url, headers, body)


def _build_rest(call: ProcedureCall, config: WireConfig, headers: dict[str, str]) -> RequestDescriptor:
    route = resolve_route(call.namespace, call.procedure_name, config.routes)
    request = build_rest_request(route, call.input)
    body = _dumps(request.body) if request.body is not None else None
    return RequestDescriptor(
        request.method.value,
        f"{config.base_url.rstrip('/')}{request.url_path}",
        headers,
        body,
    )


def build_request(call: ProcedureCall, config: WireConfig) -> RequestDescriptor:
    """Build the request descriptor for ``call`` under ``config``.

    Raises:
        MissingPathParameterError: In REST mode, when a path token has no value
    """
    headers = _headers(config)
    if detect_mode(config) is WireMode.RPC:
        return _build_rpc(call, config.base_url.rstrip("/"), headers)
    return _build_rest(call, config, headers)


__all__ = [
    "WireMode",
    "WireConfig",
    "ProcedureCall",
    "RequestDescriptor",
    "detect_mode",
    "is_query_procedure",
    "build_request",
]
