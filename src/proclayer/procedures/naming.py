"""
Naming-convention analysis for procedure names.

REST routes are inferred from name prefixes (``getUser`` → ``GET /users/:id``),
so a procedure named ``fetchUser`` silently falls back to ``POST``. This module
spots such names at definition time and suggests a fix. It runs only outside
production and costs nothing at call time.

Examples:
    >>> analyze_naming_convention("getUser", ProcedureKind.QUERY, "users") is None
    True
    >>> analyze_naming_convention("fetchUser", ProcedureKind.QUERY, "users").suggested_name
    'getUser'
    >>> analyze_naming_convention("createUser", ProcedureKind.QUERY, "users").type
    <NamingWarningType.TYPE_MISMATCH: 'type-mismatch'>
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from proclayer.procedures.types import ProcedureKind


class NamingWarningType(str, Enum):
    NO_CONVENTION = "no-convention"
    TYPE_MISMATCH = "type-mismatch"
    CASE_MISMATCH = "case-mismatch"
    SIMILAR_NAME = "similar-name"


@dataclass(frozen=True)
class NamingWarning:
    """A naming issue with an actionable suggestion."""

    procedure_name: str
    namespace: str
    type: NamingWarningType
    message: str
    suggestion: str
    suggested_name: str | None = None

    def format(self) -> str:
        return f"[{self.namespace}/{self.procedure_name}] {self.message}"


@dataclass(frozen=True)
class WarningConfig:
    """How ``define_procedures`` reacts to naming issues.

    Attributes:
        disabled: Skip analysis entirely
        strict: Raise ``ConstructionError`` instead of logging
        except_: Procedure names to skip
    """

    disabled: bool = False
    strict: bool = False
    except_: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "except_", frozenset(self.except_))


WarningOption = Union[WarningConfig, Literal["strict", "warn", "off"], bool, None]


def normalize_warning_option(option: WarningOption, default: str = "warn") -> WarningConfig:
    """Expand the shorthand forms ``False``, ``"strict"``, ``"off"`` and ``None``."""
    if isinstance(option, WarningConfig):
        return option
    if option is None:
        option = default
    if option is False or option == "off":
        return WarningConfig(disabled=True)
    if option == "strict":
        return WarningConfig(strict=True)
    if option is True or option == "warn":
        return WarningConfig()
    raise ValueError(f"Invalid warning option: {option!r}")


# prefix, expected kind
CONVENTION_PREFIXES: tuple[tuple[str, ProcedureKind], ...] = (
    ("get", ProcedureKind.QUERY),
    ("list", ProcedureKind.QUERY),
    ("find", ProcedureKind.QUERY),
    ("create", ProcedureKind.MUTATION),
    ("add", ProcedureKind.MUTATION),
    ("update", ProcedureKind.MUTATION),
    ("edit", ProcedureKind.MUTATION),
    ("patch", ProcedureKind.MUTATION),
    ("delete", ProcedureKind.MUTATION),
    ("remove", ProcedureKind.MUTATION),
)

SIMILAR_PATTERNS: dict[str, str] = {
    "fetch": "get or list",
    "retrieve": "get",
    "obtain": "get",
    "load": "get or list",
    "read": "get",
    "query": "get, list, or find",
    "search": "find",
    "new": "create",
    "insert": "create",
    "make": "create",
    "modify": "update or patch",
    "change": "update or patch",
    "set": "update",
    "destroy": "delete",
    "drop": "delete",
    "erase": "delete",
    "trash": "delete",
}

NO_CONVENTION_SUGGESTION = (
    "Use a standard prefix (get, list, find, create, update, patch, delete) or add .rest() override"
)


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def analyze_naming_convention(
    name: str,
    kind: ProcedureKind | str,
    namespace: str,
) -> NamingWarning | None:
    """Return a :class:`NamingWarning` for ``name``, or None if it follows conventions.

    Checks, in order: a known prefix used with the wrong kind, a known prefix
    with wrong casing, a common alternative prefix (``fetch``, ``search``...),
    and finally no recognizable prefix at all.
    """
    kind = ProcedureKind(kind)
    lower = name.lower()

    for prefix, expected in CONVENTION_PREFIXES:
        if not lower.startswith(prefix):
            continue

        rest = name[len(prefix):]
        if re.fullmatch(rf"{prefix}[A-Z][a-zA-Z0-9]*", name):
            if expected is not kind:
                return NamingWarning(
                    procedure_name=name,
                    namespace=namespace,
                    type=NamingWarningType.TYPE_MISMATCH,
                    message=(
                        f'"{name}" uses "{prefix}" prefix but is defined as '
                        f"{kind.value} (expected {expected.value})"
                    ),
                    suggestion=f"Change to .{expected.value}() or rename to match a {kind.value} pattern",
                )
            return None

        if rest and rest[0] == rest[0].lower() and rest[0].isalpha():
            corrected = prefix + _capitalize(rest)
            return NamingWarning(
                procedure_name=name,
                namespace=namespace,
                type=NamingWarningType.CASE_MISMATCH,
                message=f'"{name}" looks like "{prefix}" pattern but has wrong casing',
                suggestion=f'Rename to "{corrected}" for REST route generation',
                suggested_name=corrected,
            )

        if name.startswith(prefix[0].upper()):
            corrected = prefix + rest
            return NamingWarning(
                procedure_name=name,
                namespace=namespace,
                type=NamingWarningType.CASE_MISMATCH,
                message=f'"{name}" has incorrect prefix casing',
                suggestion=f'Rename to "{corrected}" (prefix should be lowercase)',
                suggested_name=corrected,
            )

    for pattern, hint in SIMILAR_PATTERNS.items():
        if lower.startswith(pattern):
            primary = hint.split(" or ")[0].split(", ")[0]
            suggested = primary + _capitalize(name[len(pattern):])
            return NamingWarning(
                procedure_name=name,
                namespace=namespace,
                type=NamingWarningType.SIMILAR_NAME,
                message=f"\"{name}\" won't generate a REST route",
                suggestion=f'Consider using "{hint}" prefix instead (e.g., "{suggested}")',
                suggested_name=suggested,
            )

    return NamingWarning(
        procedure_name=name,
        namespace=namespace,
        type=NamingWarningType.NO_CONVENTION,
        message=f"\"{name}\" doesn't match any naming convention",
        suggestion=NO_CONVENTION_SUGGESTION,
    )


__all__ = [
    "NamingWarning",
    "NamingWarningType",
    "WarningConfig",
    "WarningOption",
    "normalize_warning_option",
    "analyze_naming_convention",
    "CONVENTION_PREFIXES",
    "SIMILAR_PATTERNS",
]
