"""
proclayer - declarative procedures served as convention REST and RPC.

Subpackages:
- proclayer.procedures: builder, guards, middleware execution, router
- proclayer.rest: naming conventions, route resolution, request building
- proclayer.resources: field visibility and output projection
- proclayer.discovery: filesystem discovery of procedure collections
- proclayer.openapi: API description generation
- proclayer.api: FastAPI adapter
- proclayer.wire: client-side request descriptors (REST or RPC)
"""

__version__ = "0.1.0"

from proclayer.core.errors import (
    ConstructionError,
    DiscoveryError,
    GuardError,
    ProcedureValidationError,
    ProcLayerError,
)
from proclayer.discovery import discover_procedures, discover_procedures_verbose
from proclayer.openapi import generate_openapi
from proclayer.procedures import (
    Context,
    ProcedureRouter,
    all_of,
    any_of,
    define_guard,
    define_procedures,
    execute_procedure,
    not_,
    procedure,
    procedures,
)
from proclayer.resources import VisibilityLevel, resource_schema
from proclayer.rest import resolve_route
from proclayer.wire import ProcedureCall, WireConfig, build_request

__all__ = [
    "__version__",
    "procedure",
    "define_procedures",
    "procedures",
    "define_guard",
    "all_of",
    "any_of",
    "not_",
    "execute_procedure",
    "Context",
    "ProcedureRouter",
    "resource_schema",
    "VisibilityLevel",
    "resolve_route",
    "build_request",
    "WireConfig",
    "ProcedureCall",
    "discover_procedures",
    "discover_procedures_verbose",
    "generate_openapi",
    "ProcLayerError",
    "ConstructionError",
    "ProcedureValidationError",
    "GuardError",
    "DiscoveryError",
]
