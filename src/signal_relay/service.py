"""
Signaling Service

Handles all client -> server WebSocket messages.

Every inbound frame is decoded, validated into a typed request, resolved
to the sender's identity and dispatched to the owning component. Handlers
are synchronous: each runs to completion before the next frame is looked
at, so membership checks and the mutations they guard never interleave.
"""

import json
import logging
from typing import Callable, Dict

from .access import AccessController
from .directory import Role
from .errors import SignalingError, ValidationError
from .lifecycle import ConnectionLifecycleManager
from .presence import PresencePublisher
from .relay import Relay
from .schemas import (
    create_access_status_event,
    create_error_response,
    create_room_created_event,
    create_rooms_list_event,
    parse_request,
)
from .schemas.base import BaseRequest
from .state import RelayStore
from .transport import ConnectionHub

logger = logging.getLogger(__name__)


class SignalingService:
    """
    Main service for handling requests from clients.
    """

    def __init__(self, store: RelayStore, hub: ConnectionHub):
        """
        Initialize the service and its components.

        Args:
            store: State that stores the directory and rooms
            hub: Connection hub used for all outbound messages
        """
        self.store = store
        self.hub = hub
        self.presence = PresencePublisher(store, hub)
        self.access = AccessController(store, hub)
        self.relay = Relay(store, hub)
        self.lifecycle = ConnectionLifecycleManager(
            store, hub, self.access, self.presence
        )

        self._handlers: Dict[str, Callable[[str, str, BaseRequest], None]] = {
            "create_room": self._handle_create_room,
            "list_rooms": self._handle_list_rooms,
            "check_access": self._handle_check_access,
            "request_join": self._handle_request_join,
            "invite": self._handle_invite,
            "accept_invitation": self._handle_accept_invitation,
            "approve": self._handle_approve,
            "deny": self._handle_deny,
            "leave": self._handle_leave,
            "ready_for_relay": self._handle_ready_for_relay,
            "offer": self._handle_relay,
            "answer": self._handle_relay,
            "ice_candidate": self._handle_relay,
            "end_session": self._handle_end_session,
            "chat_message": self._handle_chat_message,
        }

        logger.info("SignalingService initialized")

    def connect(self, connection_id: str):
        self.lifecycle.connect(connection_id)

    def disconnect(self, connection_id: str):
        self.lifecycle.disconnect(connection_id)

    def handle_message(self, connection_id: str, message: str):
        """
        Entry point for handling incoming WebSocket messages.

        Args:
            connection_id: Handle of the sending connection
            message: Raw text frame
        """
        request_type = None
        try:
            try:
                decoded = json.loads(message)
            except (json.JSONDecodeError, TypeError):
                raise ValidationError(
                    "Message must be valid JSON.", "INVALID_JSON"
                )
            if isinstance(decoded, dict) and isinstance(decoded.get("type"), str):
                request_type = decoded["type"]

            request = parse_request(decoded)

            if request.message_type == "register":
                self.lifecycle.register(
                    connection_id,
                    request.user_id,
                    request.display_name,
                    Role(request.role),
                )
                return

            user_id = self.lifecycle.require_identity(connection_id)
            self._handlers[request.message_type](connection_id, user_id, request)

        except SignalingError as e:
            self._send_error(connection_id, e.error_code, e.message, request_type)
        except Exception as e:
            logger.exception(f"Error processing message: {e}")
            self._send_error(
                connection_id,
                "INTERNAL_ERROR",
                "Internal server error",
                request_type,
            )

    # Rooms and access control

    def _handle_create_room(self, connection_id, user_id, request):
        room = self.access.create_room(
            user_id, request.room_name, request.moderated
        )
        self.hub.send(connection_id, create_room_created_event(room.to_dict()))

    def _handle_list_rooms(self, connection_id, user_id, request):
        rooms = self.store.registry.list_rooms()
        self.hub.send(connection_id, create_rooms_list_event(rooms))

    def _handle_check_access(self, connection_id, user_id, request):
        status = self.access.access_status(request.room_id, user_id)
        self.hub.send(
            connection_id,
            create_access_status_event(request.room_id, status.value),
        )

    def _handle_request_join(self, connection_id, user_id, request):
        self.access.request_join(request.room_id, user_id)

    def _handle_invite(self, connection_id, user_id, request):
        self.access.invite(request.room_id, user_id, request.target_user_id)

    def _handle_accept_invitation(self, connection_id, user_id, request):
        self.access.accept_invitation(
            request.room_id, user_id, request.inviter_id
        )

    def _handle_approve(self, connection_id, user_id, request):
        self.access.approve(request.room_id, user_id, request.target_user_id)

    def _handle_deny(self, connection_id, user_id, request):
        self.access.deny(request.room_id, user_id, request.target_user_id)

    def _handle_leave(self, connection_id, user_id, request):
        self.access.leave(request.room_id, user_id)

    def _handle_ready_for_relay(self, connection_id, user_id, request):
        self.access.ready_for_relay(request.room_id, user_id)

    # Relay

    def _handle_relay(self, connection_id, user_id, request):
        self.relay.relay(
            request.message_type,
            user_id,
            request.target_user_id,
            request.room_id,
            request.payload,
        )

    def _handle_end_session(self, connection_id, user_id, request):
        self.relay.end_session(user_id, request.target_user_id, request.room_id)

    def _handle_chat_message(self, connection_id, user_id, request):
        self.relay.chat_message(request.room_id, user_id, request.text)

    def _send_error(self, connection_id, code, message, request_type=None):
        """
        Unified error response format
        """
        logger.warning(f"Error {code}: {message}")
        self.hub.send(
            connection_id, create_error_response(message, code, request_type)
        )
