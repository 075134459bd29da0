"""
Tests for the WebSocket session server with real websocket clients.
"""

from __future__ import annotations

import asyncio
import json

import pytest
from websockets.asyncio.client import connect

from conftest import sample_params
from wavedev.params.store import ParameterStore
from wavedev.session.broadcaster import SessionBroadcaster


async def _request(ws, method: str, params: dict | None = None, request_id: int = 1) -> dict:
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    await ws.send(json.dumps(message))
    return json.loads(await asyncio.wait_for(ws.recv(), timeout=5))


async def _wait_for_clients(broadcaster: SessionBroadcaster, count: int) -> None:
    for _ in range(100):
        if broadcaster.client_count == count:
            return
        await asyncio.sleep(0.02)
    raise AssertionError(f"expected {count} clients, have {broadcaster.client_count}")


@pytest.mark.evergreen
class TestSessionBroadcaster:
    """Requests, pushes, and client isolation over real connections."""

    @pytest.mark.asyncio
    async def test_request_response(self) -> None:
        broadcaster = SessionBroadcaster(ParameterStore(sample_params()), port=0)
        await broadcaster.start()
        try:
            async with connect(f"ws://127.0.0.1:{broadcaster.bound_port}") as ws:
                response = await _request(ws, "getAllParameters")
                assert len(response["result"]["parameters"]) == 3
                assert (await _request(ws, "ping", request_id=2))["result"] == {"pong": True}
        finally:
            await broadcaster.close()

    @pytest.mark.asyncio
    async def test_parameters_changed_reaches_every_client(self) -> None:
        broadcaster = SessionBroadcaster(ParameterStore(sample_params()), port=0)
        await broadcaster.start()
        url = f"ws://127.0.0.1:{broadcaster.bound_port}"
        try:
            async with connect(url) as a, connect(url) as b:
                await _wait_for_clients(broadcaster, 2)
                assert broadcaster.broadcast_parameters_changed() == 2
                for ws in (a, b):
                    message = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
                    assert message == {"jsonrpc": "2.0", "method": "parametersChanged"}
        finally:
            await broadcaster.close()

    @pytest.mark.asyncio
    async def test_set_parameter_notifies_other_clients_only(self) -> None:
        broadcaster = SessionBroadcaster(ParameterStore(sample_params()), port=0)
        await broadcaster.start()
        url = f"ws://127.0.0.1:{broadcaster.bound_port}"
        try:
            async with connect(url) as setter, connect(url) as watcher:
                await _wait_for_clients(broadcaster, 2)
                response = await _request(setter, "setParameter", {"id": "mix", "value": 0.25})
                assert response["result"] == {}

                push = json.loads(await asyncio.wait_for(watcher.recv(), timeout=5))
                assert push["method"] == "parameterChanged"
                assert push["params"] == {"id": "mix", "value": 0.25}

                # The setter gets nothing but its response
                with pytest.raises(asyncio.TimeoutError):
                    await asyncio.wait_for(setter.recv(), timeout=0.3)
        finally:
            await broadcaster.close()

    @pytest.mark.asyncio
    async def test_closed_client_does_not_affect_others(self) -> None:
        broadcaster = SessionBroadcaster(ParameterStore(sample_params()), port=0)
        await broadcaster.start()
        url = f"ws://127.0.0.1:{broadcaster.bound_port}"
        try:
            async with connect(url) as survivor:
                gone = await connect(url)
                await _wait_for_clients(broadcaster, 2)
                await gone.close()

                broadcaster.broadcast_parameters_changed()
                message = json.loads(await asyncio.wait_for(survivor.recv(), timeout=5))
                assert message["method"] == "parametersChanged"
        finally:
            await broadcaster.close()

    @pytest.mark.asyncio
    async def test_broadcast_with_no_clients(self) -> None:
        broadcaster = SessionBroadcaster(ParameterStore(), port=0)
        await broadcaster.start()
        try:
            assert broadcaster.broadcast_parameters_changed() == 0
        finally:
            await broadcaster.close()
        assert broadcaster.bound_port is None
