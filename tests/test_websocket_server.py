"""
Tests for the WebSocket Server

Tests for the health check, the per-client handler and a round trip
through a real server on localhost.
"""

import asyncio
import json
from http import HTTPStatus
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from websockets.asyncio.client import connect

from signal_relay import ConnectionHub, RelayStore, SignalingService, WebSocketServer
from signal_relay.websocket_server import HEALTH_BODY


class FakeClient:
    """Async-iterable websocket that yields scripted frames."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent_messages = []

    def __aiter__(self):
        return self

    async def __anext__(self):
        # let the writer task run between frames
        await asyncio.sleep(0)
        if not self.frames:
            raise StopAsyncIteration
        return self.frames.pop(0)

    async def send(self, message):
        self.sent_messages.append(message)


@pytest.fixture
def ws_server():
    store = RelayStore()
    hub = ConnectionHub()
    service = SignalingService(store, hub)
    return WebSocketServer(service, hub, "127.0.0.1", 0)


def test_process_request_answers_health_check(ws_server):
    connection = MagicMock()

    response = ws_server.process_request(
        connection, SimpleNamespace(path="/health")
    )

    connection.respond.assert_called_once_with(HTTPStatus.OK, HEALTH_BODY)
    assert response is connection.respond.return_value


def test_process_request_lets_other_paths_upgrade(ws_server):
    connection = MagicMock()

    assert ws_server.process_request(connection, SimpleNamespace(path="/")) is None
    connection.respond.assert_not_called()


@pytest.mark.asyncio
async def test_handle_client_registers_then_cleans_up(ws_server):
    register = {
        "type": "register",
        "data": {"user_id": "alice", "display_name": "Alice"},
    }
    client = FakeClient([json.dumps(register)])

    await ws_server.handle_client(client)

    sent = [json.loads(m) for m in client.sent_messages]
    assert sent[0]["type"] == "registration_successful"
    assert sent[0]["data"]["user_id"] == "alice"

    store = ws_server.service.store
    assert "alice" not in store.directory
    assert ws_server.hub.connection_count() == 0


@pytest_asyncio.fixture
async def server_port(ws_server):
    await ws_server.start()
    yield next(iter(ws_server.server.sockets)).getsockname()[1]
    await ws_server.stop()


@pytest.mark.asyncio
async def test_server_round_trip(server_port):
    """A real client registers, then gets an error frame for bad JSON."""
    async with connect(f"ws://127.0.0.1:{server_port}") as client:
        await client.send(
            json.dumps(
                {
                    "type": "register",
                    "data": {"user_id": "alice", "display_name": "Alice"},
                }
            )
        )
        reply = json.loads(await asyncio.wait_for(client.recv(), timeout=2))
        assert reply["type"] == "registration_successful"

        await client.send("not json")
        while True:
            message = json.loads(await asyncio.wait_for(client.recv(), timeout=2))
            if message["type"] == "error":
                break
        assert message["data"]["error_code"] == "INVALID_JSON"


@pytest.mark.asyncio
async def test_health_endpoint_over_http(server_port):
    reader, writer = await asyncio.open_connection("127.0.0.1", server_port)
    writer.write(b"GET /health HTTP/1.1\r\nHost: localhost\r\n\r\n")
    await writer.drain()

    response = await asyncio.wait_for(reader.read(), timeout=2)
    writer.close()

    assert response.startswith(b"HTTP/1.1 200")
    assert HEALTH_BODY.encode() in response
