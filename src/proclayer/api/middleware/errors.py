"""
Error handlers: map :class:`ProcLayerError` to RFC 7807 responses.

The status code always comes from the error itself; 5xx details are only
exposed when ``settings.debug`` is on.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from proclayer.api.schemas.common import ErrorDetail, ProblemDetail
from proclayer.core.errors import ProcedureValidationError, ProcLayerError
from proclayer.core.logging import get_logger

logger = get_logger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"
GENERIC_DETAIL = "An unexpected error occurred."

STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    500: "Internal Server Error",
}


def title_for_status(status: int) -> str:
    """Standard reason phrase, ``Error`` for anything unlisted."""
    return STATUS_TITLES.get(status, "Error")


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    code: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        code=code,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(status_code=status, content=body.model_dump(), media_type=PROBLEM_MEDIA_TYPE)


def _debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug)


def _field_errors(exc: ProcLayerError) -> list[dict[str, Any]]:
    if not isinstance(exc, ProcedureValidationError):
        return []
    return [
        {"code": exc.code, "message": message, "field": field}
        for field, message in exc.fields.items()
    ]


async def proclayer_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a :class:`ProcLayerError` with its own status and code.

    Any other exception is handed to :func:`unhandled_exception_handler`.
    """
    if not isinstance(exc, ProcLayerError):
        return await unhandled_exception_handler(request, exc)
    status = exc.status_code
    if status >= 500:
        logger.error("http.procedure_error", instance=request.url.path, **exc.to_dict())
        detail = exc.message if _debug(request) else GENERIC_DETAIL
    else:
        detail = exc.message
    return problem_response(
        status=status,
        title=title_for_status(status),
        detail=detail,
        instance=request.url.path,
        code=exc.code,
        errors=_field_errors(exc),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: returns 500 with ProblemDetail."""
    logger.exception("http.unhandled_exception", instance=request.url.path, error=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if _debug(request) else GENERIC_DETAIL,
        instance=request.url.path,
        code="INTERNAL_SERVER_ERROR",
    )


__all__ = [
    "problem_response",
    "proclayer_exception_handler",
    "unhandled_exception_handler",
    "title_for_status",
]
