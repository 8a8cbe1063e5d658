#!/usr/bin/env python3
"""
Signaling Relay Server

Brokers connection-setup messages between peers and controls who may join
shared session rooms.
"""

import asyncio
import logging
import os
import sys

from .room_state import MAX_ROOM_MEMBERS, PRIMARY_ROOM_ID, PRIMARY_ROOM_NAME
from .service import SignalingService
from .state import RelayStore
from .transport import OUTBOX_SIZE, ConnectionHub
from .websocket_server import WebSocketServer

logger = logging.getLogger(__name__)


def configure_logging(level_name: str):
    """Configure root logging from a level name such as INFO or DEBUG."""
    level = getattr(logging, level_name.strip().upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def run_server(
    ws_host: str,
    ws_port: int,
    primary_room_id: str,
    primary_room_name: str,
    max_room_members: int,
    outbox_size: int,
):
    """
    Run the signaling relay until cancelled.

    Args:
        ws_host: WebSocket host address to bind to
        ws_port: WebSocket port to listen on
        primary_room_id: ID of the pre-provisioned room
        primary_room_name: Display name of the pre-provisioned room
        max_room_members: Membership limit per room
        outbox_size: Queued outbound messages allowed per connection
    """
    store = RelayStore(primary_room_id, primary_room_name, max_room_members)
    hub = ConnectionHub(outbox_size)
    service = SignalingService(store, hub)
    ws_server = WebSocketServer(service, hub, ws_host, ws_port)

    await ws_server.start()

    logger.info(f"Signaling server listening on ws://{ws_host}:{ws_port}")
    logger.info(
        f"Primary room '{primary_room_name}' (ID: {primary_room_id}), "
        f"max {max_room_members} members per room"
    )

    try:
        # Wait indefinitely
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Server shutdown requested")
    finally:
        await ws_server.stop()
        logger.info("Signaling server stopped")


def main():
    """Main entry point for the signaling relay."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger.info("Starting signaling relay...")

    # Get configuration from environment or use defaults
    ws_host = os.environ.get("WEBSOCKET_HOST", "0.0.0.0")
    ws_port = int(
        os.environ.get("WEBSOCKET_PORT", os.environ.get("PORT", "4000"))
    )

    primary_room_id = os.environ.get("PRIMARY_ROOM_ID", PRIMARY_ROOM_ID)
    primary_room_name = os.environ.get("PRIMARY_ROOM_NAME", PRIMARY_ROOM_NAME)
    max_room_members = int(
        os.environ.get("MAX_ROOM_MEMBERS", str(MAX_ROOM_MEMBERS))
    )
    outbox_size = int(os.environ.get("OUTBOX_SIZE", str(OUTBOX_SIZE)))

    try:
        asyncio.run(
            run_server(
                ws_host,
                ws_port,
                primary_room_id,
                primary_room_name,
                max_room_members,
                outbox_size,
            )
        )
    except KeyboardInterrupt:
        logger.info("Shutting down signaling relay...")
        sys.exit(0)


if __name__ == "__main__":
    main()
