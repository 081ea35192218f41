"""
Contract types shared by the builder, the execution engine and the adapters.

A :class:`CompiledProcedure` is created once at module load time and never
mutated. A :class:`ProcedureCollection` groups compiled procedures under a
namespace; its ``procedures`` mapping is a read-only proxy.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from proclayer.rest.conventions import HttpMethod, ParentResource

if TYPE_CHECKING:
    from proclayer.core.schema import Schema
    from proclayer.procedures.guards import Guard
    from proclayer.resources.schema import ResourceSchema


class ProcedureKind(str, Enum):
    """Whether a procedure reads (query) or writes (mutation)."""

    QUERY = "query"
    MUTATION = "mutation"


Handler = Callable[..., Any]
"""``handler(*, input, ctx)`` returning a value or an awaitable."""

Middleware = Callable[..., Awaitable[Any]]
"""``async middleware(*, input, ctx, next)``; must await ``next(...)`` exactly once."""


@dataclass(frozen=True)
class RestOverride:
    """Procedure-level REST route override set through ``.rest()``.

    Either part may be None, in which case it is inferred from the name.
    """

    method: HttpMethod | None = None
    path: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.method is not None and self.path is not None


@dataclass(frozen=True, eq=False)
class CompiledProcedure:
    """Immutable executable unit produced by ``.query()`` / ``.mutation()``."""

    type: ProcedureKind
    handler: Handler
    input_schema: Schema | None = None
    output_schema: Schema | None = None
    middlewares: tuple[Middleware, ...] = ()
    guards: tuple[Guard, ...] = ()
    deprecated: bool = False
    deprecation_message: str | None = None
    resource_schema: ResourceSchema | None = None
    rest_override: RestOverride | None = None
    parent_resources: tuple[ParentResource, ...] = ()

    @property
    def is_query(self) -> bool:
        return self.type is ProcedureKind.QUERY


@dataclass(frozen=True, eq=False)
class ProcedureCollection:
    """Named group of compiled procedures.

    ``procedures`` is stored as a ``MappingProxyType`` over a private copy,
    so neither the caller's dict nor the collection can be changed later.
    """

    namespace: str
    procedures: Mapping[str, CompiledProcedure] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "procedures", MappingProxyType(dict(self.procedures)))

    def __iter__(self):
        return iter(self.procedures.items())

    def __len__(self) -> int:
        return len(self.procedures)


__all__ = [
    "ProcedureKind",
    "HttpMethod",
    "Handler",
    "Middleware",
    "RestOverride",
    "ParentResource",
    "CompiledProcedure",
    "ProcedureCollection",
]
