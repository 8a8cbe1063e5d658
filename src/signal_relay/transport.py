"""
Connection Hub

Keeps track of open client connections by handle, tags connections with
room identifiers and fans messages out to one connection, a room group, or
every connection.

Sending never blocks: messages are put on a bounded per-connection outbox
that a writer task drains onto the websocket. A full outbox drops the
message.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

import websockets

logger = logging.getLogger(__name__)

OUTBOX_SIZE = 256


class Connection:
    """
    A client connection and its outbound queue.

    Attributes:
        connection_id: Server-assigned handle
        websocket: The underlying websocket (anything with ``async send``)
        outbox: Bounded queue of messages waiting to be written
    """

    def __init__(self, connection_id: str, websocket, outbox_size: int):
        self.connection_id = connection_id
        self.websocket = websocket
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)

    def enqueue(self, message: Dict[str, Any]) -> bool:
        try:
            self.outbox.put_nowait(message)
            return True
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox full for connection {self.connection_id}, "
                f"dropping '{message.get('type')}'"
            )
            return False

    async def pump(self):
        """Write queued messages to the websocket until it closes."""
        while True:
            message = await self.outbox.get()
            try:
                await self.websocket.send(json.dumps(message))
            except websockets.exceptions.ConnectionClosed:
                logger.debug(
                    f"Connection {self.connection_id} closed while sending"
                )
                return


class ConnectionHub:
    """
    Registry of open connections and room groups.

    Room groups mirror room membership: a connection is tagged with a room
    while its user is joined to it, and room-scoped broadcasts go to the
    tagged connections.
    """

    def __init__(self, outbox_size: int = OUTBOX_SIZE):
        self.outbox_size = outbox_size
        self._connections: Dict[str, Connection] = {}
        # Maps room_id -> set of connection ids
        self._groups: Dict[str, Set[str]] = {}
        # Maps connection id -> set of room_ids
        self._connection_groups: Dict[str, Set[str]] = {}

    def add_connection(self, connection_id: str, websocket) -> Connection:
        connection = Connection(connection_id, websocket, self.outbox_size)
        self._connections[connection_id] = connection
        return connection

    def remove_connection(self, connection_id: str):
        """Forget a connection and untag it from every group."""
        self._connections.pop(connection_id, None)
        for room_id in self._connection_groups.pop(connection_id, set()):
            members = self._groups.get(room_id)
            if members is not None:
                members.discard(connection_id)
                if not members:
                    del self._groups[room_id]

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def connection_count(self) -> int:
        return len(self._connections)

    def join_group(self, connection_id: str, room_id: str):
        self._groups.setdefault(room_id, set()).add(connection_id)
        self._connection_groups.setdefault(connection_id, set()).add(room_id)

    def leave_group(self, connection_id: str, room_id: str):
        members = self._groups.get(room_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._groups[room_id]
        rooms = self._connection_groups.get(connection_id)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._connection_groups[connection_id]

    def move_groups(self, old_connection_id: str, new_connection_id: str):
        """Transfer every group tag from one connection to another."""
        for room_id in list(self._connection_groups.get(old_connection_id, ())):
            self.leave_group(old_connection_id, room_id)
            self.join_group(new_connection_id, room_id)

    def group_members(self, room_id: str) -> Set[str]:
        return set(self._groups.get(room_id, ()))

    def send(self, connection_id: Optional[str], message: Dict[str, Any]) -> bool:
        """
        Queue a message for one connection.

        Returns:
            True if queued, False if the connection is unknown or its
            outbox is full
        """
        if connection_id is None:
            return False
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug(
                f"Dropping '{message.get('type')}' for unknown "
                f"connection {connection_id}"
            )
            return False
        return connection.enqueue(message)

    def broadcast_to_group(
        self,
        room_id: str,
        message: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        """
        Queue a message for every connection tagged with a room.

        Args:
            room_id: The room ID
            message: The message to broadcast
            exclude: Optional connection id to skip

        Returns:
            Number of connections the message was queued for
        """
        sent = 0
        for connection_id in list(self._groups.get(room_id, ())):
            if connection_id != exclude and self.send(connection_id, message):
                sent += 1
        return sent

    def broadcast(self, message: Dict[str, Any]) -> int:
        """Queue a message for every open connection."""
        sent = 0
        for connection_id in list(self._connections):
            if self.send(connection_id, message):
                sent += 1
        return sent
