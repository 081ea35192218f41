"""
Middleware/guard execution engine.

Runs one compiled procedure for one call. The pipeline is fixed:

Architecture:
    ::

        raw input ──► input schema ──► middleware 1 ──► ... ──► middleware N
                                                                    │
                          ◄── output ◄── projection ◄── handler ◄── guards
                          │
                          └──► output schema ──► result

    Each middleware receives ``input``, ``ctx`` and ``next`` as keyword
    arguments and must ``await next(...)`` exactly once. ``next`` extends the
    context for everything downstream and returns the downstream output. The
    middleware's own return value is ignored.

State machine (``ExecutionState``)::

    PENDING ─► RUNNING_MIDDLEWARE ─► RUNNING_GUARDS ─► RUNNING_HANDLER
                                                          │
                                DONE ◄── PROJECTING ◄─────┘
    FAILED is reachable from every running state.

Failure classification:
    - input schema rejects          → ProcedureValidationError (400)
    - middleware skips/repeats next → MiddlewareError (500)
    - middleware raises             → propagated unchanged
    - guard fails                   → GuardError (guard's status, 500 if it raised)
    - handler raises ProcLayerError → propagated unchanged
    - handler raises anything else  → HandlerError (500)
    - output schema rejects         → OutputValidationError (500)

Examples:
    >>> import asyncio
    >>> from proclayer.procedures.builder import procedure
    >>> async def add_user(*, input, ctx, next):
    ...     await next(user="u1")
    >>> proc = procedure().use(add_user).query(lambda *, input, ctx: ctx.user)
    >>> asyncio.run(execute_procedure(proc, None))
    'u1'
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from enum import Enum
from typing import Any

from proclayer.core.errors import (
    GuardError,
    HandlerError,
    MiddlewareError,
    OutputValidationError,
    ProcLayerError,
)
from proclayer.core.logging import get_logger
from proclayer.core.schema import parse_input, validation_fields
from proclayer.procedures.context import Context, as_context
from proclayer.procedures.guards import evaluate_guard
from proclayer.procedures.types import CompiledProcedure
from proclayer.resources.projection import project
from proclayer.resources.visibility import VisibilityLevel, highest

logger = get_logger(__name__)


class ExecutionState(str, Enum):
    PENDING = "pending"
    RUNNING_MIDDLEWARE = "running_middleware"
    RUNNING_GUARDS = "running_guards"
    RUNNING_HANDLER = "running_handler"
    PROJECTING = "projecting"
    DONE = "done"
    FAILED = "failed"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ProcedureInvocation:
    """A single, single-use run of a compiled procedure.

    ``state`` can be inspected while the run is suspended (from inside a
    middleware, guard or handler) or after it finishes.
    """

    def __init__(
        self,
        procedure: CompiledProcedure,
        *,
        namespace: str | None = None,
        name: str | None = None,
    ):
        self.procedure = procedure
        self.namespace = namespace
        self.name = name
        self.state = ExecutionState.PENDING
        self.access_level: VisibilityLevel | None = None

    def _error_context(self) -> dict[str, Any]:
        return {"namespace": self.namespace, "procedure": self.name}

    async def run(self, raw_input: Any = None, ctx: Mapping[str, Any] | Context | None = None) -> Any:
        if self.state is not ExecutionState.PENDING:
            raise RuntimeError(f"Invocation already {self.state.value}")

        try:
            parsed = raw_input
            if self.procedure.input_schema is not None:
                parsed = parse_input(self.procedure.input_schema, raw_input)

            self.state = ExecutionState.RUNNING_MIDDLEWARE
            output = await self._run_chain(0, parsed, as_context(ctx))

            if self.procedure.output_schema is not None:
                try:
                    output = self.procedure.output_schema.parse(output)
                except Exception as e:
                    raise OutputValidationError(
                        "Output validation failed",
                        fields=validation_fields(e),
                        cause=e,
                    ) from e
        except ProcLayerError as e:
            self.state = ExecutionState.FAILED
            e.with_context(**{k: v for k, v in self._error_context().items() if v is not None})
            raise
        except Exception:
            self.state = ExecutionState.FAILED
            raise

        self.state = ExecutionState.DONE
        return output

    async def _run_chain(self, index: int, input: Any, ctx: Context) -> Any:
        middlewares = self.procedure.middlewares
        if index == len(middlewares):
            return await self._run_terminal(input, ctx)

        middleware = middlewares[index]
        calls = 0
        downstream: dict[str, Any] = {}

        async def next_(extension: Mapping[str, Any] | None = None, **values: Any) -> Any:
            nonlocal calls
            calls += 1
            if calls > 1:
                raise MiddlewareError(
                    "middleware called next more than once",
                    fix="Await next() exactly once per middleware",
                )
            try:
                downstream["output"] = await self._run_chain(index + 1, input, ctx.extend(extension, **values))
            except BaseException as e:
                downstream["error"] = e
                raise
            return downstream["output"]

        await _maybe_await(middleware(input=input, ctx=ctx, next=next_))

        if calls == 0:
            raise MiddlewareError(
                "middleware did not call next",
                fix="Await next() (optionally with a context extension) in every middleware",
            )
        if "error" in downstream:
            raise downstream["error"]
        return downstream["output"]

    async def _run_terminal(self, input: Any, ctx: Context) -> Any:
        self.state = ExecutionState.RUNNING_GUARDS
        request = ctx.get("request")
        reply = ctx.get("reply")
        granted: VisibilityLevel | None = None
        for guard in self.procedure.guards:
            outcome = await evaluate_guard(guard, ctx, request, reply)
            if not outcome.passed:
                logger.info(
                    "procedure.guard_failed",
                    namespace=self.namespace,
                    procedure=self.name,
                    guard=outcome.guard_name,
                    status_code=outcome.status_code,
                )
                raise GuardError(outcome.guard_name, outcome.message, status_code=outcome.status_code)
            granted = highest(granted, outcome.access_level)
        self.access_level = granted

        self.state = ExecutionState.RUNNING_HANDLER
        try:
            output = await _maybe_await(self.procedure.handler(input=input, ctx=ctx))
        except ProcLayerError:
            raise
        except Exception as e:
            logger.exception("procedure.handler_failed", namespace=self.namespace, procedure=self.name)
            raise HandlerError(f"Handler raised {type(e).__name__}: {e}", cause=e) from e

        schema = self.procedure.resource_schema
        if schema is not None:
            self.state = ExecutionState.PROJECTING
            level = schema.level or granted or VisibilityLevel.PUBLIC
            output = project(output, schema, level)
        return output


async def execute_procedure(
    procedure: CompiledProcedure,
    raw_input: Any = None,
    ctx: Mapping[str, Any] | Context | None = None,
    *,
    namespace: str | None = None,
    name: str | None = None,
) -> Any:
    """Run ``procedure`` once and return its (projected, validated) output."""
    invocation = ProcedureInvocation(procedure, namespace=namespace, name=name)
    return await invocation.run(raw_input, ctx)


__all__ = ["ExecutionState", "ProcedureInvocation", "execute_procedure"]
