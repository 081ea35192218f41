"""
RPC router: procedure-call endpoints keyed by ``namespace.name``.

Endpoints:
    GET  /{namespace}.{name}?input=<json>   queries
    POST /{namespace}.{name}                mutations, JSON body

Successful responses are wrapped as ``{"result": {"data": <output>}}``.
Errors use the same RFC 7807 envelope as the REST router.
"""

from __future__ import annotations

from collections.abc import Iterable

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from proclayer.api.deps import ContextFactory, as_registry, build_context, decode_json, read_json_body
from proclayer.api.schemas.common import RpcResult, RpcSuccess
from proclayer.procedures.registry import ProcedureRouter
from proclayer.procedures.types import ProcedureCollection


def _endpoint(registry: ProcedureRouter, namespace: str, name: str, is_query: bool, context_factory):
    async def endpoint(request: Request) -> JSONResponse:
        if is_query:
            raw = request.query_params.get("input")
            raw_input = None if raw is None else decode_json(raw, source="'input' query parameter")
        else:
            raw_input = await read_json_body(request)
        ctx = await build_context(request, context_factory)
        output = await registry.call(namespace, name, raw_input, ctx)
        envelope = RpcSuccess(result=RpcResult(data=jsonable_encoder(output)))
        return JSONResponse(content=envelope.model_dump())

    endpoint.__name__ = f"rpc_{namespace}_{name}"
    return endpoint


def create_rpc_router(
    collections: Iterable[ProcedureCollection] | ProcedureRouter,
    *,
    context_factory: ContextFactory | None = None,
) -> APIRouter:
    """Build an :class:`APIRouter` exposing every procedure as an RPC call."""
    registry = as_registry(collections)
    router = APIRouter()
    for namespace, name, proc in registry:
        router.add_api_route(
            f"/{namespace}.{name}",
            _endpoint(registry, namespace, name, proc.is_query, context_factory),
            methods=["GET" if proc.is_query else "POST"],
            name=f"rpc.{namespace}.{name}",
            include_in_schema=False,
        )
    return router


__all__ = ["create_rpc_router"]
