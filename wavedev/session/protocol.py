"""Pydantic models for the session JSON-RPC 2.0 protocol.

Message types:
- Requests: IpcRequest (method + params + id)
- Responses: IpcResponse (result or error, echoing the request id)
- Notifications: IpcNotification (server push, no id)
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


# =============================================================================
# Error Codes
# =============================================================================

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
PARAM_NOT_FOUND = -32000
PARAM_OUT_OF_RANGE = -32001


# =============================================================================
# Method Names
# =============================================================================

METHOD_GET_PARAMETER = "getParameter"
METHOD_SET_PARAMETER = "setParameter"
METHOD_GET_ALL_PARAMETERS = "getAllParameters"
METHOD_PING = "ping"

NOTIFICATION_PARAMETERS_CHANGED = "parametersChanged"
NOTIFICATION_PARAMETER_CHANGED = "parameterChanged"


# =============================================================================
# Envelopes
# =============================================================================

RequestId = Union[int, str]


class IpcError(BaseModel):
    """JSON-RPC error object."""

    code: int = Field(description="Standard or application error code")
    message: str = Field(description="Human-readable error message")
    data: Optional[Any] = Field(None, description="Optional structured detail")

    @classmethod
    def parse_error(cls, detail: str) -> "IpcError":
        return cls(code=PARSE_ERROR, message=f"Parse error: {detail}")

    @classmethod
    def invalid_request(cls, detail: str) -> "IpcError":
        return cls(code=INVALID_REQUEST, message=f"Invalid request: {detail}")

    @classmethod
    def method_not_found(cls, method: str) -> "IpcError":
        return cls(code=METHOD_NOT_FOUND, message=f"Method not found: {method}")

    @classmethod
    def invalid_params(cls, detail: str) -> "IpcError":
        return cls(code=INVALID_PARAMS, message=f"Invalid params: {detail}")

    @classmethod
    def internal(cls, detail: str) -> "IpcError":
        return cls(code=INTERNAL_ERROR, message=f"Internal error: {detail}")

    @classmethod
    def param_not_found(cls, param_id: str) -> "IpcError":
        return cls(code=PARAM_NOT_FOUND, message=f"Parameter not found: {param_id}")

    @classmethod
    def param_out_of_range(cls, param_id: str, value: float) -> "IpcError":
        return cls(
            code=PARAM_OUT_OF_RANGE,
            message=f"Parameter {param_id} value {value} out of range",
        )


class IpcRequest(BaseModel):
    """Client -> server call."""

    jsonrpc: str = Field("2.0", description="Protocol version, always 2.0")
    id: RequestId = Field(description="Correlation id echoed in the response")
    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Named parameters")


class IpcResponse(BaseModel):
    """Server -> client reply to one request."""

    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    result: Optional[Any] = None
    error: Optional[IpcError] = None

    @classmethod
    def success(cls, request_id: Optional[RequestId], result: Any) -> "IpcResponse":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: Optional[RequestId], error: IpcError) -> "IpcResponse":
        return cls(id=request_id, error=error)

    def to_json(self) -> str:
        # result and error are mutually exclusive on the wire
        if self.error is not None:
            return self.model_dump_json(exclude={"result"})
        return self.model_dump_json(exclude={"error"})


class IpcNotification(BaseModel):
    """Server -> client push with no id and no reply."""

    jsonrpc: str = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def parameters_changed() -> IpcNotification:
    """Hot-reload push: clients re-fetch the full list."""
    return IpcNotification(method=NOTIFICATION_PARAMETERS_CHANGED)


def parameter_changed(param_id: str, value: float) -> IpcNotification:
    return IpcNotification(
        method=NOTIFICATION_PARAMETER_CHANGED,
        params={"id": param_id, "value": value},
    )


# =============================================================================
# Method Params
# =============================================================================


class GetParameterParams(BaseModel):
    id: str


class SetParameterParams(BaseModel):
    id: str
    value: float
