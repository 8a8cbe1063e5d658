"""
Shared fixtures for the signaling relay tests.

Connections are backed by MockWebSocket objects; outbound messages are read
straight from each connection's outbox, so no event loop has to run.
"""

import asyncio
import json

import pytest

from signal_relay import ConnectionHub, RelayStore, SignalingService


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self):
        self.sent_messages = []

    async def send(self, message):
        self.sent_messages.append(message)


@pytest.fixture
def store():
    return RelayStore()


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def service(store, hub):
    return SignalingService(store, hub)


@pytest.fixture
def drain(hub):
    """Return a function that pops every queued message for a connection."""

    def _drain(connection_id):
        connection = hub.get_connection(connection_id)
        messages = []
        while True:
            try:
                messages.append(connection.outbox.get_nowait())
            except asyncio.QueueEmpty:
                return messages

    return _drain


@pytest.fixture
def connect(service, hub):
    """Return a function that opens a mock connection."""

    def _connect(connection_id):
        hub.add_connection(connection_id, MockWebSocket())
        service.connect(connection_id)
        return connection_id

    return _connect


@pytest.fixture
def send(service):
    """Return a function that delivers one JSON frame to the service."""

    def _send(connection_id, message_type, **data):
        service.handle_message(
            connection_id, json.dumps({"type": message_type, "data": data})
        )

    return _send


@pytest.fixture
def register(hub, connect, send):
    """
    Return a function that connects (if needed) and registers a user.

    The connection id defaults to ``conn-<user_id>``.
    """

    def _register(user_id, role="ordinary", connection_id=None, display_name=None):
        connection_id = connection_id or f"conn-{user_id}"
        if hub.get_connection(connection_id) is None:
            connect(connection_id)
        send(
            connection_id,
            "register",
            user_id=user_id,
            display_name=display_name or user_id.capitalize(),
            role=role,
        )
        return connection_id

    return _register


def of_type(messages, message_type):
    """Filter messages by their type."""
    return [m for m in messages if m["type"] == message_type]


@pytest.fixture
def by_type():
    return of_type
