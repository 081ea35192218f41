"""HTTP adapter: FastAPI routers and app factory for procedure collections."""

from proclayer.api.app import create_app
from proclayer.api.deps import ContextFactory
from proclayer.api.routers import create_rest_router, create_rpc_router

__all__ = ["create_app", "create_rest_router", "create_rpc_router", "ContextFactory"]
