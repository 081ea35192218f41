"""
Structured error types for the procedure layer.

Provides a typed hierarchy of errors with enough metadata for the HTTP
adapter to build stable problem responses, for the CLI to print actionable
hints, and for logs to carry the namespace/procedure/guard that failed.

Instead of raw exceptions that lose context, every ProcLayerError carries:
- **Category:** What kind of error (construction, validation, auth, ...)
- **Code:** Stable machine-readable code (``VALIDATION_ERROR``, ``FORBIDDEN``)
- **Status code:** HTTP status used when the error crosses a wire boundary
- **Fix:** Optional remediation hint for developer-facing failures
- **Context:** Namespace, procedure, guard, file path and custom fields
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Construction errors are loud and immediate,
      per-request errors are structured and stable-shaped
    - **No Automatic Retries:** Guard and middleware failures are final
    - **Rich Context:** Errors carry metadata for logging and responses
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       ProcLayerError                             │
        │  (category, code, status_code, fix, context, cause)              │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConstructionError     ProcedureValidationError   GuardError     │
        │  (CONSTRUCTION)        (VALIDATION, fields)       (AUTH)         │
        │                        OutputValidationError                     │
        │                                                                  │
        │  MiddlewareError       HandlerError         DiscoveryError       │
        │  (MIDDLEWARE)          (HANDLER)            (DISCOVERY, kind)    │
        │                                                                  │
        │  RoutingError                                                    │
        │  (ROUTING)                                                       │
        │       │                                                          │
        │  MissingPathParameterError   ProcedureNotFoundError              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = GuardError("hasRole:admin", "Required role: admin", status_code=403)
    >>> error.code
    'FORBIDDEN'
    >>> error.to_dict()["guard"]
    'hasRole:admin'

    >>> error = ConstructionError("Procedure handler must be callable")
    >>> error.with_context(namespace="users", procedure="getUser")
    ConstructionError('Procedure handler must be callable', category=CONSTRUCTION)

Tags:
    error-handling, exception-hierarchy, error-context, proclayer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Categories split into developer-facing errors that should fail fast
    (CONSTRUCTION, DISCOVERY) and per-request errors that are converted to
    structured responses (VALIDATION, AUTH, MIDDLEWARE, HANDLER, ROUTING).

    Attributes:
        CONSTRUCTION: Builder misuse, duplicate namespaces, naming violations
        VALIDATION: Input or output failed the schema contract
        AUTH: A guard rejected the call
        MIDDLEWARE: A middleware broke the chain protocol
        HANDLER: Application code raised inside a handler
        ROUTING: Route resolution or request building failed
        DISCOVERY: Filesystem scanning or module loading failed
        INTERNAL: Bugs, unexpected state
    """

    CONSTRUCTION = "CONSTRUCTION"
    VALIDATION = "VALIDATION"
    AUTH = "AUTH"
    MIDDLEWARE = "MIDDLEWARE"
    HANDLER = "HANDLER"
    ROUTING = "ROUTING"
    DISCOVERY = "DISCOVERY"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover the identifiers that show up in almost every failure
    of this layer; anything else goes into ``metadata``. ``to_dict()`` emits
    only the fields that were set.

    Examples:
        >>> ctx = ErrorContext(namespace="users", procedure="getUser")
        >>> ctx.to_dict()
        {'namespace': 'users', 'procedure': 'getUser'}
    """

    namespace: str | None = None
    procedure: str | None = None
    guard: str | None = None
    file_path: str | None = None
    export_name: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["namespace", "procedure", "guard", "file_path", "export_name"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ProcLayerError(Exception):
    """
    Base exception for all procedure layer errors.

    Subclasses set ``default_category``, ``default_code`` and
    ``default_status_code``; callers can override any of them per instance.
    The HTTP adapter relies on ``status_code`` and ``to_dict()`` only, so a
    subclass that keeps those stable keeps its wire shape stable.

    Examples:
        >>> error = ProcLayerError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.status_code
        500

        >>> try:
        ...     raise KeyError("user")
        ... except KeyError as e:
        ...     error = ProcLayerError("Lookup failed", cause=e)
        >>> error.cause
        KeyError('user')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_code: str = "INTERNAL"
    default_status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        code: str | None = None,
        status_code: int | None = None,
        fix: str | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.code = code or self.default_code
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.fix = fix
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ProcLayerError:
        """
        Add context to this error (fluent API).

        Usage:
            raise HandlerError("Failed").with_context(
                namespace="users",
                procedure="createUser",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "category": self.category.value,
            "status_code": self.status_code,
        }
        if self.fix:
            result["fix"] = self.fix
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONSTRUCTION ERRORS
# =============================================================================


class ConstructionError(ProcLayerError):
    """
    Builder or registration misuse.

    Raised synchronously at definition time (module load), never at call
    time: missing handler, double terminal call, non-compiled values passed
    to ``define_procedures``, duplicate namespaces, strict naming violations.
    """

    default_category = ErrorCategory.CONSTRUCTION
    default_code = "CONSTRUCTION_ERROR"
    default_status_code = 500


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ProcedureValidationError(ProcLayerError):
    """
    Input failed the schema contract.

    ``fields`` maps a dotted field path to its message; the root of the
    input is reported under ``"_root"``.
    """

    default_category = ErrorCategory.VALIDATION
    default_code = "VALIDATION_ERROR"
    default_status_code = 400

    def __init__(
        self,
        message: str,
        *,
        fields: dict[str, str] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.fields = dict(fields or {})

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.fields:
            result["fields"] = dict(self.fields)
        return result


class OutputValidationError(ProcedureValidationError):
    """Handler output failed the output schema (a server-side bug)."""

    default_code = "OUTPUT_VALIDATION_ERROR"
    default_status_code = 500


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


def _code_for_guard_status(status_code: int) -> str:
    if status_code == 401:
        return "UNAUTHORIZED"
    if status_code == 403:
        return "FORBIDDEN"
    return "GUARD_ERROR"


class GuardError(ProcLayerError):
    """
    A guard rejected the call.

    Carries the failing guard's name and status so callers can tell
    authentication (401) from authorization (403) failures. A guard whose
    predicate raised is reported with status 500.
    """

    default_category = ErrorCategory.AUTH
    default_status_code = 403

    def __init__(
        self,
        guard_name: str,
        message: str,
        status_code: int = 403,
        **kwargs: Any,
    ):
        kwargs.setdefault("code", _code_for_guard_status(status_code))
        super().__init__(message, status_code=status_code, **kwargs)
        self.guard_name = guard_name
        self.context.guard = guard_name

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["guard"] = self.guard_name
        return result


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class MiddlewareError(ProcLayerError):
    """A middleware did not call ``next`` or called it more than once."""

    default_category = ErrorCategory.MIDDLEWARE
    default_code = "MIDDLEWARE_ERROR"
    default_status_code = 500


class HandlerError(ProcLayerError):
    """Unclassified exception raised by application code inside a handler."""

    default_category = ErrorCategory.HANDLER
    default_code = "INTERNAL_SERVER_ERROR"
    default_status_code = 500


# =============================================================================
# ROUTING ERRORS
# =============================================================================


class RoutingError(ProcLayerError):
    """Route resolution or request building error."""

    default_category = ErrorCategory.ROUTING
    default_code = "ROUTING_ERROR"
    default_status_code = 400


class MissingPathParameterError(RoutingError):
    """A path token has no (non-None) value in the input."""

    default_code = "MISSING_PATH_PARAMETER"

    def __init__(self, param: str, path: str):
        self.param = param
        self.path = path
        super().__init__(f"Missing path parameter: {param}")
        self.context.metadata["path"] = path


class ProcedureNotFoundError(RoutingError):
    """No procedure registered under ``namespace.name``."""

    default_code = "NOT_FOUND"
    default_status_code = 404

    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(f"Procedure not found: {namespace}.{name}")
        self.context.namespace = namespace
        self.context.procedure = name


# =============================================================================
# DISCOVERY ERRORS
# =============================================================================


class DiscoveryErrorCode(str, Enum):
    """Kinds of discovery failure."""

    DIRECTORY_NOT_FOUND = "DIRECTORY_NOT_FOUND"
    NO_PROCEDURES_FOUND = "NO_PROCEDURES_FOUND"
    INVALID_EXPORT = "INVALID_EXPORT"
    FILE_LOAD_ERROR = "FILE_LOAD_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"


class DiscoveryError(ProcLayerError):
    """
    Filesystem discovery failure.

    Always carries the offending path and a ``fix`` string. Use the factory
    functions in :mod:`proclayer.discovery.errors` rather than constructing
    this directly.
    """

    default_category = ErrorCategory.DISCOVERY
    default_status_code = 500

    def __init__(
        self,
        kind: DiscoveryErrorCode,
        message: str,
        *,
        file_path: str,
        fix: str,
        **kwargs: Any,
    ):
        super().__init__(message, code=kind.value, fix=fix, **kwargs)
        self.kind = kind
        self.file_path = file_path
        self.context.file_path = file_path

    def format(self) -> str:
        """Multi-line rendering for terminals: code, message, file, fix."""
        lines = [f"DiscoveryError[{self.code}]: {self.message}"]
        if self.file_path:
            lines.append(f"  File: {self.file_path}")
        if self.fix:
            lines.append(f"  Fix: {self.fix}")
        return "\n".join(lines)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_client_error(error: BaseException) -> bool:
    """True when the error is attributable to the caller (4xx)."""
    if isinstance(error, ProcLayerError):
        return 400 <= error.status_code < 500
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ProcLayerError",
    "ConstructionError",
    "ProcedureValidationError",
    "OutputValidationError",
    "GuardError",
    "MiddlewareError",
    "HandlerError",
    "RoutingError",
    "MissingPathParameterError",
    "ProcedureNotFoundError",
    "DiscoveryErrorCode",
    "DiscoveryError",
    "is_client_error",
]
