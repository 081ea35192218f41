"""Convention-based REST routing and request building."""

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
from proclayer.rest.requests import (
    RestRequest,
    build_query_string,
    build_rest_request,
    substitute_path_params,
)

__all__ = [
    "HttpMethod",
    "Route",
    "ParentResource",
    "check_route_conflicts",
    "derive_parent_param",
    "infer_method",
    "infer_path",
    "resolve_route",
    "extract_path_params",
    "to_template_path",
    "RestRequest",
    "build_rest_request",
    "build_query_string",
    "substitute_path_params",
]
