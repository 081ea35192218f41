"""
Split procedure input between path, query string and body.

Examples:
    >>> route = Route(HttpMethod.GET, "/posts/:postId/comments/:id")
    >>> build_rest_request(route, {"postId": "abc", "id": "456", "extra": "x"}).url_path
    '/posts/abc/comments/456?extra=x'
    >>> route = Route(HttpMethod.POST, "/posts/:postId/comments/:id")
    >>> build_rest_request(route, {"postId": "abc", "id": "456", "extra": "x"}).body
    {'extra': 'x'}
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from proclayer.core.errors import MissingPathParameterError
from proclayer.rest.conventions import PATH_PARAM_PATTERN, HttpMethod, Route, extract_path_params


@dataclass(frozen=True)
class RestRequest:
    """Method, substituted path, encoded query string and body for one call."""

    method: HttpMethod
    path: str
    query: str = ""
    body: Any = None

    @property
    def url_path(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def substitute_path_params(path: str, input: Mapping[str, Any] | None) -> str:
    """Replace every ``:name`` token with the URL-quoted input value.

    Raises:
        MissingPathParameterError: If a token's value is absent or None
    """
    values = input if isinstance(input, Mapping) else {}

    def replace(match: Any) -> str:
        param = match.group(1)
        value = values.get(param)
        if value is None:
            raise MissingPathParameterError(param, path)
        return quote(_to_text(value), safe="")

    return PATH_PARAM_PATTERN.sub(replace, path)


def build_query_string(input: Mapping[str, Any] | None, exclude: Collection[str] = ()) -> str:
    """Encode ``input`` as a query string, skipping ``exclude`` and None values.

    Lists and tuples become repeated entries (``tags=a&tags=b``).
    """
    pairs: list[tuple[str, str]] = []
    for key, value in (input or {}).items():
        if key in exclude or value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _to_text(item)) for item in value if item is not None)
        else:
            pairs.append((key, _to_text(value)))
    return urlencode(pairs)


def build_rest_request(route: Route, input: Any = None) -> RestRequest:
    """Build the REST request for ``route`` from a procedure input."""
    params = extract_path_params(route.path)
    path = substitute_path_params(route.path, input) if params else route.path

    if route.method is HttpMethod.GET:
        query = build_query_string(input if isinstance(input, Mapping) else None, params)
        return RestRequest(route.method, path, query=query)

    if isinstance(input, Mapping) and params:
        body = {key: value for key, value in input.items() if key not in params}
    else:
        body = input
    return RestRequest(route.method, path, body=body)


__all__ = [
    "RestRequest",
    "build_rest_request",
    "build_query_string",
    "substitute_path_params",
]
