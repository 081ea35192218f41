"""
Guards and guard combinators.

A guard is a named authorization check with a stable failure shape
(``name``, ``status_code``, ``message``). Leaves wrap a user predicate;
combinators build a tagged tree that a single interpreter,
:func:`evaluate_guard`, walks at call time. Building a combinator never runs
a predicate.

Manifesto:
    - **Declarative:** guards are data, evaluated only by the engine
    - **Attributable:** every failure names the leaf that caused it
    - **Fail closed:** a predicate that raises counts as a failure (500)

Architecture:
    ::

        Guard = GuardLeaf | AllOf | AnyOf | Not

        all_of(a, b, c)   → AllOf   first failing member is reported
        any_of(a, b)      → AnyOf   passes if any member passes
        not_(a)           → Not     inverts a; failure reports a's shape

Examples:
    >>> is_admin = define_guard("hasRole:admin", lambda ctx, req, rep: ctx.get("role") == "admin")
    >>> is_admin.status_code, is_admin.message
    (403, 'Forbidden')
    >>> combined = all_of(is_admin, not_(is_admin))
    >>> combined.name
    'allOf(hasRole:admin,not(hasRole:admin))'

Tags:
    guards, authorization, combinators, proclayer
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from proclayer.core.errors import ConstructionError
from proclayer.core.logging import get_logger
from proclayer.resources.visibility import VisibilityLevel, as_level, highest

logger = get_logger(__name__)

GuardCheck = Callable[[Any, Any, Any], Union[bool, Awaitable[bool]]]

UNAUTHENTICATED_MESSAGE = "Authentication required"
FORBIDDEN_MESSAGE = "Forbidden"


def default_message(status_code: int) -> str:
    return UNAUTHENTICATED_MESSAGE if status_code == 401 else FORBIDDEN_MESSAGE


# =============================================================================
# GUARD TREE
# =============================================================================


@dataclass(frozen=True)
class GuardLeaf:
    """A single named predicate ``check(ctx, request, reply)``.

    ``access_level`` is optional; when a leaf passes, the engine may use it
    to pick the projection level for an untagged resource schema.
    """

    name: str
    check: GuardCheck
    status_code: int = 403
    message: str = ""
    access_level: VisibilityLevel | None = None

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", default_message(self.status_code))
        if self.access_level is not None:
            object.__setattr__(self, "access_level", as_level(self.access_level))


class _Composite:
    """Shared contract surface for combinator nodes."""

    status_code: int
    message: str

    async def check(self, ctx: Any, request: Any = None, reply: Any = None) -> bool:
        outcome = await evaluate_guard(self, ctx, request, reply)  # type: ignore[arg-type]
        return outcome.passed


@dataclass(frozen=True)
class AllOf(_Composite):
    guards: tuple[Guard, ...]
    status_code: int = 403
    message: str = FORBIDDEN_MESSAGE

    @property
    def name(self) -> str:
        return f"allOf({','.join(g.name for g in self.guards)})"


@dataclass(frozen=True)
class AnyOf(_Composite):
    guards: tuple[Guard, ...]
    status_code: int = 403
    message: str = FORBIDDEN_MESSAGE

    @property
    def name(self) -> str:
        return f"anyOf({','.join(g.name for g in self.guards)})"


@dataclass(frozen=True)
class Not(_Composite):
    guard: Guard

    @property
    def name(self) -> str:
        return f"not({self.guard.name})"

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self.guard.status_code

    @property
    def message(self) -> str:  # type: ignore[override]
        return self.guard.message


Guard = Union[GuardLeaf, AllOf, AnyOf, Not]


# =============================================================================
# CONSTRUCTORS
# =============================================================================


def define_guard(
    name: str,
    check: GuardCheck,
    *,
    status_code: int = 403,
    message: str | None = None,
    access_level: VisibilityLevel | str | None = None,
) -> GuardLeaf:
    """Create a guard from a predicate.

    Args:
        name: Identifier reported on failure (``"hasRole:admin"``)
        check: ``check(ctx, request, reply)`` returning bool or an awaitable of bool
        status_code: Failure status, 401 for authentication, 403 for authorization
        message: Failure message; defaults by status code
        access_level: Visibility level granted when the guard passes

    Raises:
        ConstructionError: If ``name`` is empty or ``check`` is not callable
    """
    if not isinstance(name, str) or not name:
        raise ConstructionError("Guard name must be a non-empty string")
    if not callable(check):
        raise ConstructionError(
            f"Guard {name!r} check must be callable",
            fix="Pass a function taking (ctx, request, reply)",
        )
    return GuardLeaf(
        name=name,
        check=check,
        status_code=status_code,
        message=message or "",
        access_level=as_level(access_level) if access_level is not None else None,
    )


def as_guard(value: Any) -> Guard:
    """Normalize a guard-shaped object or mapping into the guard tree.

    Accepts the tree's own node types, mappings with ``name``/``check`` keys,
    and any object exposing ``name`` and a callable ``check``.

    Raises:
        ConstructionError: If ``value`` does not satisfy the guard contract
    """
    if isinstance(value, (GuardLeaf, AllOf, AnyOf, Not)):
        return value
    if isinstance(value, Mapping):
        get = value.get
    else:
        def get(key: str, default: Any = None) -> Any:
            return getattr(value, key, default)

    name = get("name")
    check = get("check")
    if not isinstance(name, str) or not name or not callable(check):
        raise ConstructionError(
            f"Invalid guard: {value!r}",
            fix="Use define_guard(name, check) or an object with name and check(ctx, request, reply)",
        )
    return define_guard(
        name,
        check,
        status_code=get("status_code", 403) or 403,
        message=get("message"),
        access_level=get("access_level"),
    )


def all_of(*guards: Any) -> AllOf:
    """Pass only if every member passes; stop at the first failure."""
    return AllOf(guards=tuple(as_guard(g) for g in guards))


def any_of(*guards: Any) -> AnyOf:
    """Pass if at least one member passes."""
    return AnyOf(guards=tuple(as_guard(g) for g in guards))


def not_(guard: Any) -> Not:
    """Invert a guard. Failures report the wrapped guard's name, status and message."""
    return Not(guard=as_guard(guard))


# =============================================================================
# INTERPRETER
# =============================================================================


@dataclass(frozen=True)
class GuardOutcome:
    """Result of evaluating one guard tree.

    On failure, ``guard_name``/``status_code``/``message`` describe the
    member to blame. On success, ``access_level`` is the highest level
    granted by passing leaves (None if none declared one).
    """

    passed: bool
    guard_name: str
    status_code: int
    message: str
    access_level: VisibilityLevel | None = None
    errored: bool = False


async def _run_leaf(leaf: GuardLeaf, ctx: Any, request: Any, reply: Any) -> GuardOutcome:
    try:
        result = leaf.check(ctx, request, reply)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("procedure.guard_raised", guard=leaf.name, error=str(e))
        return GuardOutcome(
            passed=False,
            guard_name=leaf.name,
            status_code=500,
            message=str(e) or "Guard check failed",
            errored=True,
        )
    if result:
        return GuardOutcome(True, leaf.name, leaf.status_code, leaf.message, leaf.access_level)
    return GuardOutcome(False, leaf.name, leaf.status_code, leaf.message)


async def evaluate_guard(
    guard: Guard,
    ctx: Any,
    request: Any = None,
    reply: Any = None,
) -> GuardOutcome:
    """Evaluate a guard tree against the current context.

    Members run strictly in declared order. ``AllOf`` short-circuits on the
    first failure; ``AnyOf`` evaluates every member and, if none pass,
    reports the last one; ``Not`` inverts, except that a raised predicate
    stays a failure.
    """
    if isinstance(guard, GuardLeaf):
        return await _run_leaf(guard, ctx, request, reply)

    if isinstance(guard, AllOf):
        level = None
        for member in guard.guards:
            outcome = await evaluate_guard(member, ctx, request, reply)
            if not outcome.passed:
                return outcome
            level = highest(level, outcome.access_level)
        return GuardOutcome(True, guard.name, guard.status_code, guard.message, level)

    if isinstance(guard, AnyOf):
        last: GuardOutcome | None = None
        passed_levels: list[VisibilityLevel | None] = []
        for member in guard.guards:
            outcome = await evaluate_guard(member, ctx, request, reply)
            if outcome.passed:
                passed_levels.append(outcome.access_level)
            last = outcome
        if passed_levels:
            return GuardOutcome(True, guard.name, guard.status_code, guard.message, highest(*passed_levels))
        if last is None:
            return GuardOutcome(False, guard.name, guard.status_code, guard.message)
        return last

    if isinstance(guard, Not):
        inner = await evaluate_guard(guard.guard, ctx, request, reply)
        if inner.errored:
            return inner
        if inner.passed:
            return GuardOutcome(False, guard.guard.name, guard.status_code, guard.message)
        return GuardOutcome(True, guard.name, guard.status_code, guard.message)

    raise TypeError(f"Not a guard: {guard!r}")


__all__ = [
    "Guard",
    "GuardLeaf",
    "AllOf",
    "AnyOf",
    "Not",
    "GuardOutcome",
    "GuardCheck",
    "define_guard",
    "as_guard",
    "all_of",
    "any_of",
    "not_",
    "evaluate_guard",
    "default_message",
]
