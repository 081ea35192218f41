"""
Common API schemas: RFC 7807 errors and the RPC success envelope.

Every REST endpoint returns the procedure's (projected) output directly on
success, and :class:`ProblemDetail` on 4xx/5xx. RPC endpoints wrap their
output as ``{"result": {"data": ...}}`` and share the same error envelope.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Field-level error, one per failing input field."""

    code: str = Field(description="Machine-readable error code (e.g., 'VALIDATION_ERROR')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Dotted field path, '_root' for the whole input")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``VALIDATION_ERROR`` (400): Input failed the procedure's schema
        - ``MISSING_PATH_PARAMETER`` (400): Route token without a value
        - ``UNAUTHORIZED`` (401): A guard requires authentication
        - ``FORBIDDEN`` (403): A guard denied access
        - ``NOT_FOUND`` (404): No such procedure
        - ``GUARD_ERROR`` (500): A guard predicate raised
        - ``MIDDLEWARE_ERROR`` (500): Middleware broke the ``next`` protocol
        - ``OUTPUT_VALIDATION_ERROR`` (500): Handler output failed its schema
        - ``INTERNAL_SERVER_ERROR`` (500): Handler raised

    Example:
        {
            "type": "about:blank",
            "title": "Forbidden",
            "status": 403,
            "detail": "Required role: admin",
            "instance": "/api/users/42",
            "code": "FORBIDDEN",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="URI reference identifying the problem type")
    title: str = Field(description="Short human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation")
    instance: str = Field(default="", description="URI of the failing request")
    code: str | None = Field(default=None, description="Stable machine-readable error code")
    errors: list[ErrorDetail] = Field(default_factory=list, description="Field-level errors")


# ── RPC envelope ────────────────────────────────────────────────────────


class RpcResult(BaseModel):
    data: Any = None


class RpcSuccess(BaseModel):
    """``{"result": {"data": ...}}`` as returned by the RPC router."""

    result: RpcResult
