"""
JSON-RPC 2.0 envelope models
"""

from __future__ import annotations

import time
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict

JSONRPC_VERSION = "2.0"

RequestId = Union[str, int, None]


class JsonRpcRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: Optional[Any] = None


class JsonRpcError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int
    message: str
    data: Optional[Any] = None


class JsonRpcResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    result: Optional[Any] = None
    error: Optional[JsonRpcError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_wire(self) -> dict:
        payload = self.model_dump(mode="json", exclude_none=True)
        # a null id is still part of the envelope
        payload.setdefault("id", None)
        return payload


def create_request(method: str, params: Any = None, request_id: RequestId = None) -> JsonRpcRequest:
    return JsonRpcRequest(
        id=request_id if request_id is not None else int(time.time() * 1000),
        method=method,
        params=params,
    )


def create_success_response(request_id: RequestId, result: Any) -> JsonRpcResponse:
    return JsonRpcResponse(id=request_id, result=result)


def create_error_response(
    request_id: RequestId,
    code: int,
    message: str,
    data: Any = None,
) -> JsonRpcResponse:
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=int(code), message=message, data=data),
    )
