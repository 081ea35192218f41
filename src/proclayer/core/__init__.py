"""Core primitives: errors, logging, settings, schema contract."""

from proclayer.core.errors import (
    ConstructionError,
    DiscoveryError,
    DiscoveryErrorCode,
    ErrorCategory,
    ErrorContext,
    GuardError,
    HandlerError,
    MiddlewareError,
    MissingPathParameterError,
    OutputValidationError,
    ProcedureNotFoundError,
    ProcedureValidationError,
    ProcLayerError,
    RoutingError,
)
from proclayer.core.schema import PydanticSchema, Schema, as_schema

__all__ = [
    "ProcLayerError",
    "ErrorCategory",
    "ErrorContext",
    "ConstructionError",
    "ProcedureValidationError",
    "OutputValidationError",
    "GuardError",
    "MiddlewareError",
    "HandlerError",
    "RoutingError",
    "MissingPathParameterError",
    "ProcedureNotFoundError",
    "DiscoveryError",
    "DiscoveryErrorCode",
    "Schema",
    "PydanticSchema",
    "as_schema",
]
