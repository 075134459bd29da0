"""
WebSocket session server and push fan-out.

Clients keep one long-lived connection each. Requests are answered on the
connection they arrived on; notifications go to every open connection and
never wait on any single one.
"""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, broadcast, serve
from websockets.exceptions import ConnectionClosed

from wavedev.core.utils import log, plural
from wavedev.params.store import ParameterStore
from wavedev.session.handler import RequestHandler
from wavedev.session.protocol import IpcNotification, parameters_changed

logger = logging.getLogger(__name__)


class SessionBroadcaster:
    """Owns the client set and the WebSocket server bound to it."""

    def __init__(self, store: ParameterStore, host: str = "127.0.0.1", port: int = 9000):
        self.store = store
        self.host = host
        self.port = port
        self.handler = RequestHandler(store)
        self._clients: set[ServerConnection] = set()
        self._server: Optional[Server] = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def bound_port(self) -> Optional[int]:
        """Actual listening port (useful when started with port 0)."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    async def start(self) -> None:
        self._server = await serve(self._serve_client, self.host, self.port)
        logger.debug("Session server listening on %s:%s", self.host, self.bound_port)

    async def close(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self._clients.clear()

    async def _serve_client(self, websocket: ServerConnection) -> None:
        self._clients.add(websocket)
        log.dim(f"Client connected ({plural(self.client_count, 'client')})")
        try:
            async for message in websocket:
                result = self.handler.handle_text(message)
                if result.response is not None:
                    await websocket.send(result.response.to_json())
                if result.notify_others is not None:
                    self._send_all(result.notify_others, exclude=websocket)
        except ConnectionClosed:
            pass
        finally:
            self._clients.discard(websocket)
            log.dim(f"Client disconnected ({plural(self.client_count, 'client')})")

    def _send_all(self, notification: IpcNotification, exclude: Optional[ServerConnection] = None) -> int:
        targets = [c for c in self._clients if c is not exclude]
        if targets:
            # Closed or failing connections are skipped and logged by websockets
            broadcast(targets, notification.to_json())
        return len(targets)

    def broadcast_parameters_changed(self) -> int:
        """Tell every client to re-fetch the parameter list.

        Returns the number of clients addressed. Call only after the store
        swap this announces.
        """
        sent = self._send_all(parameters_changed())
        logger.debug("parametersChanged sent to %d client(s)", sent)
        return sent
