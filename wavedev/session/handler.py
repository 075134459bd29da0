"""
JSON-RPC request dispatch against the parameter store.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from wavedev.core.errors import ParameterNotFound, ParameterOutOfRange
from wavedev.params.store import ParameterStore
from wavedev.session.protocol import (
    METHOD_GET_ALL_PARAMETERS,
    METHOD_GET_PARAMETER,
    METHOD_PING,
    METHOD_SET_PARAMETER,
    GetParameterParams,
    IpcError,
    IpcNotification,
    IpcRequest,
    IpcResponse,
    SetParameterParams,
    parameter_changed,
)

logger = logging.getLogger(__name__)


@dataclass
class HandleResult:
    """Reply for the caller plus an optional push for every other client."""

    response: Optional[IpcResponse]
    notify_others: Optional[IpcNotification] = None


class RequestHandler:
    """Turns raw request text into responses. Transport-agnostic."""

    def __init__(self, store: ParameterStore):
        self.store = store
        self._methods: dict[str, Callable[[IpcRequest], HandleResult]] = {
            METHOD_GET_PARAMETER: self._get_parameter,
            METHOD_SET_PARAMETER: self._set_parameter,
            METHOD_GET_ALL_PARAMETERS: self._get_all_parameters,
            METHOD_PING: self._ping,
        }

    def handle_text(self, text: str | bytes) -> HandleResult:
        try:
            raw = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return HandleResult(IpcResponse.failure(None, IpcError.parse_error(str(e))))

        request_id = raw.get("id") if isinstance(raw, dict) else None
        try:
            request = IpcRequest.model_validate(raw)
        except ValidationError as e:
            return HandleResult(IpcResponse.failure(
                request_id if isinstance(request_id, (int, str)) else None,
                IpcError.invalid_request(_first_error(e)),
            ))
        return self.handle(request)

    def handle(self, request: IpcRequest) -> HandleResult:
        method = self._methods.get(request.method)
        if method is None:
            return HandleResult(IpcResponse.failure(request.id, IpcError.method_not_found(request.method)))
        try:
            return method(request)
        except ValidationError as e:
            return HandleResult(IpcResponse.failure(request.id, IpcError.invalid_params(_first_error(e))))
        except ParameterNotFound as e:
            return HandleResult(IpcResponse.failure(request.id, IpcError.param_not_found(e.param_id)))
        except ParameterOutOfRange as e:
            return HandleResult(IpcResponse.failure(
                request.id, IpcError.param_out_of_range(e.param_id, e.value)
            ))
        except Exception as e:
            logger.exception("Request %s failed", request.method)
            return HandleResult(IpcResponse.failure(request.id, IpcError.internal(str(e))))

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    def _get_parameter(self, request: IpcRequest) -> HandleResult:
        params = GetParameterParams.model_validate(request.params or {})
        param = self.store.get(params.id)
        if param is None:
            raise ParameterNotFound(params.id)
        return HandleResult(IpcResponse.success(request.id, {"id": param.id, "value": param.value}))

    def _set_parameter(self, request: IpcRequest) -> HandleResult:
        params = SetParameterParams.model_validate(request.params or {})
        updated = self.store.set_value(params.id, params.value)
        return HandleResult(
            IpcResponse.success(request.id, {}),
            notify_others=parameter_changed(updated.id, updated.value),
        )

    def _get_all_parameters(self, request: IpcRequest) -> HandleResult:
        parameters: list[dict[str, Any]] = [p.to_wire() for p in self.store.snapshot()]
        return HandleResult(IpcResponse.success(request.id, {"parameters": parameters}))

    def _ping(self, request: IpcRequest) -> HandleResult:
        return HandleResult(IpcResponse.success(request.id, {"pong": True}))


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
