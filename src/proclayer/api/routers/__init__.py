"""Routers that expose procedure collections over HTTP."""

from proclayer.api.routers.rest import create_rest_router
from proclayer.api.routers.rpc import create_rpc_router

__all__ = ["create_rest_router", "create_rpc_router"]
