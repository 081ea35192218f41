"""
Fluent, immutable procedure builder.

Every step returns a NEW builder; the receiver is never modified, so a
partially configured builder can be shared as a template:

    >>> authed = procedure().use(auth_middleware).guard(authenticated)
    >>> get_me = authed.query(lambda *, input, ctx: ctx.user)
    >>> update_me = authed.input(UpdateMe).mutation(update_profile)

The terminal steps ``.query()`` and ``.mutation()`` compile the accumulated
state into an immutable :class:`CompiledProcedure`. A builder may terminate
only once.

:func:`define_procedures` (alias :func:`procedures`) groups compiled
procedures under a namespace and runs naming-convention analysis.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from proclayer.core.errors import ConstructionError
from proclayer.core.logging import get_logger
from proclayer.core.schema import Schema, as_schema
from proclayer.core.settings import get_settings
from proclayer.procedures.guards import Guard, as_guard
from proclayer.procedures.naming import (
    WarningOption,
    analyze_naming_convention,
    normalize_warning_option,
)
from proclayer.procedures.types import (
    CompiledProcedure,
    Handler,
    HttpMethod,
    Middleware,
    ProcedureCollection,
    ProcedureKind,
    RestOverride,
)
from proclayer.resources.schema import ResourceSchema
from proclayer.rest.conventions import PATH_PARAM_PATTERN, ParentResource, derive_parent_param

logger = get_logger(__name__)


class _TerminalLatch:
    """Records whether a builder instance has been terminated."""

    __slots__ = ("used",)

    def __init__(self) -> None:
        self.used = False


@dataclass(frozen=True)
class ProcedureBuilder:
    """Accumulated definition of one procedure."""

    input_schema: Schema | None = None
    output_schema: Schema | None = None
    middlewares: tuple[Middleware, ...] = ()
    guard_list: tuple[Guard, ...] = ()
    is_deprecated: bool = False
    deprecation_message: str | None = None
    resource_schema: ResourceSchema | None = None
    rest_override: RestOverride | None = None
    parent_resources: tuple[ParentResource, ...] = ()
    _latch: _TerminalLatch = field(default_factory=_TerminalLatch, repr=False, compare=False)

    def _next(self, **changes: Any) -> ProcedureBuilder:
        return replace(self, _latch=_TerminalLatch(), **changes)

    # ── Steps ─────────────────────────────────────────────────────

    def input(self, schema: Any) -> ProcedureBuilder:
        """Validate input with ``schema`` before middleware runs."""
        return self._next(input_schema=as_schema(schema))

    def output(self, schema: Any) -> ProcedureBuilder:
        """Validate the handler's (projected) output with ``schema``."""
        return self._next(output_schema=as_schema(schema))

    def use(self, middleware: Middleware) -> ProcedureBuilder:
        """Append a middleware. Middleware run in the order they are added."""
        if not callable(middleware):
            raise ConstructionError(
                f"Middleware must be callable, got {type(middleware).__name__}",
                fix="Pass an async function taking (*, input, ctx, next)",
            )
        return self._next(middlewares=(*self.middlewares, middleware))

    def guard(self, guard: Any) -> ProcedureBuilder:
        """Append a guard. Guards run after middleware, in declared order."""
        return self._next(guard_list=(*self.guard_list, as_guard(guard)))

    def guards(self, *guards: Any) -> ProcedureBuilder:
        """Append several guards; same as chaining ``.guard()``."""
        return self._next(guard_list=(*self.guard_list, *(as_guard(g) for g in guards)))

    def deprecated(self, message: str | None = None) -> ProcedureBuilder:
        """Mark as deprecated. Documentation only; runtime behavior is unchanged."""
        return self._next(is_deprecated=True, deprecation_message=message)

    def resource(self, schema: ResourceSchema) -> ProcedureBuilder:
        """Project the handler's result through a visibility-tagged resource schema."""
        if not isinstance(schema, ResourceSchema):
            raise ConstructionError(
                f"resource() expects a ResourceSchema, got {type(schema).__name__}",
                fix="Build one with resource_schema()...build()",
            )
        return self._next(resource_schema=schema)

    def rest(self, method: HttpMethod | str | None = None, path: str | None = None) -> ProcedureBuilder:
        """Override the inferred REST method and/or path for this procedure."""
        if method is None and path is None:
            raise ConstructionError("rest() needs a method, a path, or both")
        resolved: HttpMethod | None = None
        if method is not None:
            try:
                resolved = HttpMethod(str(getattr(method, "value", method)).upper())
            except ValueError as e:
                raise ConstructionError(
                    f"Unsupported HTTP method: {method!r}",
                    fix=f"Use one of {', '.join(m.value for m in HttpMethod)}",
                    cause=e,
                ) from e
        if path is not None and not path.startswith("/"):
            raise ConstructionError(f"REST path must start with '/': {path!r}")
        return self._next(rest_override=RestOverride(method=resolved, path=path))

    def parent(self, resource: str, param: str | None = None) -> ProcedureBuilder:
        """Nest the inferred route under one parent resource.

        ``procedure().parent("posts")`` on ``comments.getComment`` routes to
        ``GET /posts/:postId/comments/:id``. ``param`` defaults to the
        singular resource name plus ``Id``.
        """
        return self._next(parent_resources=(_parent_resource(resource, param),))

    def parents(self, resources: Sequence[Any]) -> ProcedureBuilder:
        """Nest the inferred route under several parents, outermost first.

        Each item is a resource name, a ``(resource, param)`` pair or a
        mapping with ``resource`` and optional ``param`` keys.
        """
        configs: list[ParentResource] = []
        for item in resources:
            if isinstance(item, str):
                configs.append(_parent_resource(item))
            elif isinstance(item, Mapping):
                configs.append(_parent_resource(item.get("resource"), item.get("param")))
            elif isinstance(item, tuple) and len(item) == 2:
                configs.append(_parent_resource(*item))
            else:
                raise ConstructionError(
                    f"Invalid parent resource: {item!r}",
                    fix='Use "posts", ("posts", "postId") or {"resource": "posts", "param": "postId"}',
                )
        if not configs:
            raise ConstructionError("parents() needs at least one parent resource")
        return self._next(parent_resources=tuple(configs))

    # ── Terminals ─────────────────────────────────────────────────

    def query(self, handler: Handler) -> CompiledProcedure:
        """Compile as a read operation."""
        return self._compile(ProcedureKind.QUERY, handler)

    def mutation(self, handler: Handler) -> CompiledProcedure:
        """Compile as a write operation."""
        return self._compile(ProcedureKind.MUTATION, handler)

    def _compile(self, kind: ProcedureKind, handler: Handler) -> CompiledProcedure:
        if self._latch.used:
            raise ConstructionError(
                "Procedure builder already compiled",
                fix="Call .query() or .mutation() once per builder; branch from an earlier step instead",
            )
        if not callable(handler):
            raise ConstructionError(
                f"Procedure handler must be callable, got {type(handler).__name__}",
                fix="Pass a function taking (*, input, ctx)",
            )
        self._latch.used = True
        return CompiledProcedure(
            type=kind,
            handler=handler,
            input_schema=self.input_schema,
            output_schema=self.output_schema,
            middlewares=self.middlewares,
            guards=self.guard_list,
            deprecated=self.is_deprecated,
            deprecation_message=self.deprecation_message,
            resource_schema=self.resource_schema,
            rest_override=self.rest_override,
            parent_resources=self.parent_resources,
        )


def _parent_resource(resource: Any, param: str | None = None) -> ParentResource:
    if not isinstance(resource, str) or not resource.strip("/"):
        raise ConstructionError(
            f"Parent resource must be a non-empty namespace string, got {resource!r}",
            fix='Pass the parent namespace, e.g. .parent("posts")',
        )
    resource = resource.strip("/")
    param = param or derive_parent_param(resource)
    if not PATH_PARAM_PATTERN.fullmatch(f":{param}"):
        raise ConstructionError(
            f"Invalid path parameter name for parent {resource!r}: {param!r}",
            fix="Use letters, digits and underscores, starting with a letter",
        )
    return ParentResource(namespace=resource, param=param)


def procedure() -> ProcedureBuilder:
    """Start a new procedure definition."""
    return ProcedureBuilder()


# =============================================================================
# COLLECTIONS
# =============================================================================


def is_compiled_procedure(value: Any) -> bool:
    return isinstance(value, CompiledProcedure) and callable(value.handler)


def is_procedure_collection(value: Any) -> bool:
    """Strict structural check used by discovery and the router."""
    if not isinstance(value, ProcedureCollection):
        return False
    if not isinstance(value.namespace, str) or not value.namespace:
        return False
    return all(
        isinstance(name, str) and is_compiled_procedure(proc)
        for name, proc in value.procedures.items()
    )


def _check_naming(
    namespace: str,
    compiled: Mapping[str, CompiledProcedure],
    option: WarningOption,
) -> None:
    settings = get_settings()
    if settings.is_production():
        return
    config = normalize_warning_option(option, default=settings.naming_warnings)
    if config.disabled:
        return

    for name, proc in compiled.items():
        if name in config.except_:
            continue
        if proc.rest_override is not None and proc.rest_override.is_complete:
            continue
        warning = analyze_naming_convention(name, proc.type, namespace)
        if warning is None:
            continue
        if config.strict:
            raise ConstructionError(
                f"{warning.format()}. {warning.suggestion}",
            ).with_context(namespace=namespace, procedure=name)
        logger.warning(
            "procedure.naming_convention",
            namespace=namespace,
            procedure=name,
            warning_type=warning.type.value,
            message=warning.message,
            suggestion=warning.suggestion,
        )


def define_procedures(
    namespace: str,
    procedures: Mapping[str, CompiledProcedure],
    *,
    warnings: WarningOption = None,
) -> ProcedureCollection:
    """Group compiled procedures under ``namespace``.

    Args:
        namespace: Non-empty resource name (``"users"``), also the REST path root
        procedures: Procedure name → compiled procedure
        warnings: ``False``/``"off"``, ``"strict"``, ``"warn"`` or a
            :class:`WarningConfig`; defaults to ``settings.naming_warnings``

    Raises:
        ConstructionError: On an invalid namespace, a value that is not a
            compiled procedure, or a naming issue in strict mode
    """
    if not isinstance(namespace, str) or not namespace.strip():
        raise ConstructionError(
            f"Namespace must be a non-empty string, got {namespace!r}",
            fix='define_procedures("users", {...})',
        )
    if not isinstance(procedures, Mapping):
        raise ConstructionError(
            f"Procedures for {namespace!r} must be a mapping of name to procedure",
        ).with_context(namespace=namespace)

    for name, proc in procedures.items():
        if not isinstance(name, str) or not name:
            raise ConstructionError(
                f"Procedure names must be non-empty strings, got {name!r}",
            ).with_context(namespace=namespace)
        if isinstance(proc, ProcedureBuilder):
            raise ConstructionError(
                f"Procedure {namespace}.{name} was never compiled",
                fix="Finish the chain with .query(handler) or .mutation(handler)",
            ).with_context(namespace=namespace, procedure=name)
        if not is_compiled_procedure(proc):
            raise ConstructionError(
                f"Procedure {namespace}.{name} is not a compiled procedure: {type(proc).__name__}",
                fix="Build it with procedure()...query(handler) or .mutation(handler)",
            ).with_context(namespace=namespace, procedure=name)

    _check_naming(namespace, procedures, warnings)
    return ProcedureCollection(namespace=namespace, procedures=procedures)


procedures = define_procedures


__all__ = [
    "ProcedureBuilder",
    "procedure",
    "define_procedures",
    "procedures",
    "is_compiled_procedure",
    "is_procedure_collection",
]
