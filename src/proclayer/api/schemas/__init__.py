"""Wire envelopes shared by the HTTP adapter."""

from proclayer.api.schemas.common import ErrorDetail, ProblemDetail, RpcResult, RpcSuccess

__all__ = ["ErrorDetail", "ProblemDetail", "RpcResult", "RpcSuccess"]
