"""
wavedev.session - JSON-RPC protocol, request handling and the WebSocket
session broadcaster.
"""

from wavedev.session.protocol import (
    IpcError,
    IpcNotification,
    IpcRequest,
    IpcResponse,
    parameter_changed,
    parameters_changed,
)
from wavedev.session.handler import HandleResult, RequestHandler
from wavedev.session.broadcaster import SessionBroadcaster

__all__ = [
    "IpcError",
    "IpcNotification",
    "IpcRequest",
    "IpcResponse",
    "parameter_changed",
    "parameters_changed",
    "HandleResult",
    "RequestHandler",
    "SessionBroadcaster",
]
