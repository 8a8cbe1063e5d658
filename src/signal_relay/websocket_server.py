"""
WebSocket Server for the Signaling Relay

Accepts client connections, feeds their frames to the SignalingService and
runs one writer task per connection that drains its outbox. Plain HTTP
requests to ``/health`` are answered without upgrading.
"""

import asyncio
import logging
import uuid
from http import HTTPStatus

import websockets
from websockets.asyncio.server import ServerConnection, serve

from .service import SignalingService
from .transport import ConnectionHub

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
HEALTH_BODY = "Signaling server is healthy.\n"


class WebSocketServer:
    """
    WebSocket server for handling client connections.
    """

    def __init__(
        self,
        service: SignalingService,
        hub: ConnectionHub,
        host: str,
        port: int,
    ):
        """
        Initialize the WebSocket server.

        Args:
            service: The signaling service that handles messages
            hub: The connection hub shared with the service
            host: Host address to bind to
            port: Port to listen on
        """
        self.service = service
        self.hub = hub
        self.host = host
        self.port = port
        self.server = None

    async def start(self):
        """Start the WebSocket server."""
        self.server = await serve(
            self.handle_client,
            self.host,
            self.port,
            process_request=self.process_request,
        )
        logger.info(f"WebSocket server started on ws://{self.host}:{self.port}")

    async def stop(self):
        """Stop the WebSocket server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("WebSocket server stopped")

    def process_request(self, connection: ServerConnection, request):
        """Answer health checks over plain HTTP; let everything else upgrade."""
        if request.path == HEALTH_PATH:
            return connection.respond(HTTPStatus.OK, HEALTH_BODY)
        return None

    async def handle_client(self, websocket: ServerConnection):
        """
        Handle a client connection.

        Args:
            websocket: The WebSocket connection
        """
        connection_id = uuid.uuid4().hex
        connection = self.hub.add_connection(connection_id, websocket)
        self.service.connect(connection_id)
        writer = asyncio.create_task(connection.pump())

        try:
            async for message in websocket:
                self.service.handle_message(connection_id, message)
        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client {connection_id} connection closed")
        except Exception as e:
            logger.error(f"Error handling client {connection_id}: {e}")
        finally:
            self.service.disconnect(connection_id)
            self.hub.remove_connection(connection_id)
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass
