"""
FastAPI application factory.

``create_app()`` wires middleware, error handlers, the REST and RPC routers
and the generated API description into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root. Procedure collections
    never touch ``FastAPI`` directly; they are mounted here, once, under
    the prefixes from :class:`ProcLayerSettings`.

Architecture:
    ::

        create_app(collections, settings)
          ├── ProcedureRouter(collections)     duplicate namespaces fail here
          ├── middleware  TimingMiddleware → RequestIDMiddleware
          ├── handlers    ProcLayerError → RFC 7807 (status from the error)
          │               Exception      → RFC 7807 500
          ├── {api_prefix}/...              create_rest_router()
          ├── {rpc_prefix}/{ns}.{name}      create_rpc_router()
          └── {api_prefix}/openapi.json     generate_openapi()

Tags:
    proclayer, api, app-factory, composition-root, FastAPI
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from proclayer.api.deps import ContextFactory, as_registry
from proclayer.api.middleware.errors import proclayer_exception_handler, unhandled_exception_handler
from proclayer.api.middleware.request_id import RequestIDMiddleware
from proclayer.api.middleware.timing import TimingMiddleware
from proclayer.api.routers import create_rest_router, create_rpc_router
from proclayer.core.errors import ProcLayerError
from proclayer.core.logging import get_logger
from proclayer.core.settings import ProcLayerSettings, get_settings
from proclayer.openapi import generate_openapi
from proclayer.procedures.registry import ProcedureRouter
from proclayer.procedures.types import ProcedureCollection
from proclayer.rest.conventions import RouteTable

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown log lines."""
    registry: ProcedureRouter = app.state.procedures
    logger.info(
        "api.starting",
        version=app.version,
        namespaces=[c.namespace for c in registry.collections],
        procedures=len(registry),
    )
    yield
    logger.info("api.stopping")


def _prefix(value: str) -> str:
    stripped = value.strip("/")
    return f"/{stripped}" if stripped else ""


def create_app(
    collections: Iterable[ProcedureCollection] | ProcedureRouter,
    settings: ProcLayerSettings | None = None,
    *,
    routes: RouteTable | None = None,
    context_factory: ContextFactory | None = None,
) -> FastAPI:
    """Build and return a FastAPI application serving ``collections``.

    Parameters
    ----------
    collections : Iterable[ProcedureCollection] | ProcedureRouter
        Collections to expose; namespaces must be unique.
    settings : ProcLayerSettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    routes : RouteTable | None
        Per-procedure REST route overrides, ``{namespace: {name: override}}``.
    context_factory : ContextFactory | None
        Called with each request; its mapping extends the base context.
    """
    settings = settings or get_settings()
    registry = as_registry(collections)
    api_prefix = _prefix(settings.api_prefix)
    rpc_prefix = _prefix(settings.rpc_prefix)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.procedures = registry

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(TimingMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(ProcLayerError, proclayer_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── API description ──────────────────────────────────────────────
    document: dict[str, Any] = generate_openapi(
        registry.collections,
        title=settings.api_title,
        version=settings.api_version,
        prefix=api_prefix,
        routes=routes,
    )

    @app.get(f"{api_prefix}/openapi.json", include_in_schema=False)
    async def openapi_document() -> dict[str, Any]:
        return document

    # ── Routers ──────────────────────────────────────────────────────
    app.include_router(
        create_rest_router(registry, routes, context_factory=context_factory),
        prefix=api_prefix,
    )
    app.include_router(
        create_rpc_router(registry, context_factory=context_factory),
        prefix=rpc_prefix,
    )
    return app


__all__ = ["create_app"]
