"""
Message Relay

Forwards connection-setup messages (offer, answer, ICE candidate) and
end-of-session notices to a single peer, and fans room chat out to joined
members. Payloads are never inspected. Messages for offline targets are
dropped without telling the sender.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .errors import AuthorizationError, ValidationError
from .schemas import (
    RELAY_KINDS,
    create_chat_message_event,
    create_relay_event,
    create_session_ended_event,
)
from .state import RelayStore
from .transport import ConnectionHub
from .utils import validate_message_content

logger = logging.getLogger(__name__)


class Relay:
    """
    Stateless forwarding between known connections.

    The only lookups performed are the target's connection in the
    directory and, for chat, the room's membership.
    """

    def __init__(self, store: RelayStore, hub: ConnectionHub):
        self.store = store
        self.hub = hub

    def relay(
        self,
        kind: str,
        sender_id: str,
        target_id: str,
        room_id: Optional[str],
        payload: Any,
    ) -> bool:
        """
        Forward a connection-setup message to one peer.

        Args:
            kind: offer, answer or ice_candidate
            sender_id: Identity of the sender
            target_id: Identity of the recipient
            room_id: Room context, passed through unchanged
            payload: Opaque body, passed through unchanged

        Returns:
            True if the message was queued, False if it was dropped
        """
        if kind not in RELAY_KINDS:
            raise ValidationError(f"Unsupported relay kind: {kind}")

        target_connection = self.store.directory.resolve_connection(target_id)
        if target_connection is None:
            logger.debug(
                f"Dropping {kind} from {sender_id}: {target_id} is offline"
            )
            return False

        return self.hub.send(
            target_connection,
            create_relay_event(kind, sender_id, room_id, payload),
        )

    def end_session(
        self, sender_id: str, target_id: str, room_id: Optional[str] = None
    ) -> bool:
        """Tell a peer that the sender ended their direct session."""
        target_connection = self.store.directory.resolve_connection(target_id)
        logger.info(f"User {sender_id} ended session with {target_id}")
        if target_connection is None:
            return False
        return self.hub.send(
            target_connection, create_session_ended_event(sender_id, room_id)
        )

    def chat_message(self, room_id: str, sender_id: str, text: str) -> int:
        """
        Deliver chat text to every joined member of a room.

        The sender identity, display name and timestamp are stamped by the
        server.

        Returns:
            Number of members the message was queued for

        Raises:
            ValidationError: If the text is empty or too long
            NotFoundError: If the room does not exist
            AuthorizationError: If the sender is not joined to the room
        """
        is_valid, error = validate_message_content(text)
        if not is_valid:
            raise ValidationError(error, "INVALID_CONTENT")

        room = self.store.registry.require_room(room_id)
        if not room.is_member(sender_id):
            raise AuthorizationError(
                "You are not a member of this room.", "NOT_MEMBER"
            )

        directory = self.store.directory
        message = create_chat_message_event(
            room_id,
            sender_id,
            directory.display_name_of(sender_id),
            text,
            datetime.now(timezone.utc).isoformat(),
        )

        delivered = 0
        for member_id in list(room.members):
            if self.hub.send(directory.resolve_connection(member_id), message):
                delivered += 1

        logger.info(
            f"Chat in room {room_id} by {sender_id} "
            f"delivered to {delivered} members"
        )
        return delivered
