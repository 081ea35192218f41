"""Procedure definition, composition and execution."""

from proclayer.procedures.builder import (
    ProcedureBuilder,
    define_procedures,
    is_compiled_procedure,
    is_procedure_collection,
    procedure,
    procedures,
)
from proclayer.procedures.context import Context
from proclayer.procedures.executor import ExecutionState, ProcedureInvocation, execute_procedure
from proclayer.procedures.guards import (
    AllOf,
    AnyOf,
    Guard,
    GuardLeaf,
    Not,
    all_of,
    any_of,
    define_guard,
    evaluate_guard,
    not_,
)
from proclayer.procedures.naming import (
    NamingWarning,
    NamingWarningType,
    WarningConfig,
    analyze_naming_convention,
)
from proclayer.procedures.registry import ProcedureRouter
from proclayer.procedures.types import (
    CompiledProcedure,
    HttpMethod,
    ProcedureCollection,
    ProcedureKind,
    RestOverride,
)

__all__ = [
    "procedure",
    "ProcedureBuilder",
    "define_procedures",
    "procedures",
    "is_compiled_procedure",
    "is_procedure_collection",
    "Context",
    "ExecutionState",
    "ProcedureInvocation",
    "execute_procedure",
    "Guard",
    "GuardLeaf",
    "AllOf",
    "AnyOf",
    "Not",
    "define_guard",
    "all_of",
    "any_of",
    "not_",
    "evaluate_guard",
    "NamingWarning",
    "NamingWarningType",
    "WarningConfig",
    "analyze_naming_convention",
    "ProcedureRouter",
    "CompiledProcedure",
    "ProcedureCollection",
    "ProcedureKind",
    "HttpMethod",
    "RestOverride",
]
