"""Procedure Router: namespace registry and direct invocation.

Manifesto:
    Collections are defined at import time; the router decouples that from
    resolution at call time. Namespaces are write-once: registering the same
    namespace twice is a construction error, never a silent replacement.

Architecture:
    ::

        ProcedureRouter
          ├── .register(collection)     ─ store by namespace
          ├── .get(namespace, name)     ─ lookup compiled procedure
          ├── .routes(overrides)        ─ resolved REST routes
          └── .call(namespace, name,…)  ─ validate → middleware → guards → handler

Tags:
    registry, router, procedures, lookup, proclayer
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from proclayer.core.errors import ConstructionError, ProcedureNotFoundError
from proclayer.core.logging import LogContext, get_logger
from proclayer.procedures.builder import is_procedure_collection
from proclayer.procedures.context import Context
from proclayer.procedures.executor import execute_procedure
from proclayer.procedures.types import CompiledProcedure, ProcedureCollection
from proclayer.rest.conventions import Route, RouteTable, check_route_conflicts, resolve_route

logger = get_logger(__name__)


class ProcedureRouter:
    """Registry of procedure collections keyed by namespace.

    Example:
        >>> router = ProcedureRouter([users, posts])
        >>> router.get("users", "getUser")
        CompiledProcedure(...)
        >>> await router.call("users", "getUser", {"id": "1"}, ctx={"request": None})
    """

    def __init__(self, collections: Iterable[ProcedureCollection] = ()):
        self._collections: dict[str, ProcedureCollection] = {}
        for collection in collections:
            self.register(collection)

    def register(self, collection: ProcedureCollection) -> ProcedureRouter:
        """Add a collection. Returns self for chaining.

        Raises:
            ConstructionError: If the value is not a collection or its
                namespace is already registered
        """
        if not is_procedure_collection(collection):
            raise ConstructionError(
                f"Not a procedure collection: {collection!r}",
                fix="Create one with define_procedures(namespace, {...})",
            )
        if collection.namespace in self._collections:
            raise ConstructionError(
                f"Namespace already registered: {collection.namespace!r}",
                fix="Merge the procedures into one collection or rename a namespace",
            ).with_context(namespace=collection.namespace)
        self._collections[collection.namespace] = collection
        logger.debug(
            "router.collection_registered",
            namespace=collection.namespace,
            procedures=len(collection.procedures),
        )
        return self

    def get(self, namespace: str, name: str) -> CompiledProcedure:
        collection = self._collections.get(namespace)
        if collection is None or name not in collection.procedures:
            raise ProcedureNotFoundError(namespace, name)
        return collection.procedures[name]

    def has(self, namespace: str, name: str) -> bool:
        collection = self._collections.get(namespace)
        return collection is not None and name in collection.procedures

    @property
    def collections(self) -> tuple[ProcedureCollection, ...]:
        return tuple(self._collections.values())

    def __iter__(self) -> Iterator[tuple[str, str, CompiledProcedure]]:
        for namespace, collection in self._collections.items():
            for name, proc in collection.procedures.items():
                yield namespace, name, proc

    def __len__(self) -> int:
        return sum(len(c.procedures) for c in self._collections.values())

    def routes(self, overrides: RouteTable | None = None) -> list[Route]:
        """Resolved REST route of every procedure, in registration order.

        Raises:
            ConstructionError: If two procedures resolve to the same method and path
        """
        routes = [resolve_route(ns, name, overrides, proc) for ns, name, proc in self]
        check_route_conflicts(routes)
        return routes

    async def call(
        self,
        namespace: str,
        name: str,
        input: Any = None,
        ctx: Mapping[str, Any] | Context | None = None,
    ) -> Any:
        """Look up ``namespace.name`` and execute it.

        Raises:
            ProcedureNotFoundError: If nothing is registered under that name
        """
        proc = self.get(namespace, name)
        async with LogContext(namespace=namespace, procedure=name):
            return await execute_procedure(proc, input, ctx, namespace=namespace, name=name)


__all__ = ["ProcedureRouter"]
