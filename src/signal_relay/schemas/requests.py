"""
Request Schema Definitions

One dataclass per inbound message type. ``parse_request`` turns a decoded
``{"type": ..., "data": {...}}`` envelope into the matching request
object, rejecting unknown types and malformed fields before any state is
touched.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ValidationError
from .base import BaseRequest

ROLE_ORDINARY = "ordinary"
ROLE_AUTHORITY = "authority"


@dataclass
class RegisterRequest(BaseRequest):
    """
    Bind the connection to a user identity.

    Attributes:
        user_id: Client-asserted identity
        display_name: Name shown to other users
        role: ``ordinary`` or ``authority``
    """

    message_type = "register"

    user_id: str
    display_name: str
    role: str = ROLE_ORDINARY

    def validate(self):
        super().validate()
        if self.role not in (ROLE_ORDINARY, ROLE_AUTHORITY):
            raise ValidationError(
                f"'role' must be '{ROLE_ORDINARY}' or '{ROLE_AUTHORITY}'"
            )


@dataclass
class CreateRoomRequest(BaseRequest):
    """
    Create an ad-hoc room.

    Attributes:
        room_name: Display name of the room
        moderated: Whether an authority-capable creator governs the room
    """

    message_type = "create_room"

    room_name: str
    moderated: bool = True

    def validate(self):
        super().validate()
        if not isinstance(self.moderated, bool):
            raise ValidationError("'moderated' must be a boolean")


@dataclass
class ListRoomsRequest(BaseRequest):
    """Request the list of rooms."""

    message_type = "list_rooms"


@dataclass
class RoomRequest(BaseRequest):
    """Base for requests that act on a single room."""

    room_id: str


@dataclass
class CheckAccessRequest(RoomRequest):
    message_type = "check_access"


@dataclass
class RequestJoinRequest(RoomRequest):
    message_type = "request_join"


@dataclass
class LeaveRequest(RoomRequest):
    message_type = "leave"


@dataclass
class ReadyForRelayRequest(RoomRequest):
    message_type = "ready_for_relay"


@dataclass
class TargetedRoomRequest(BaseRequest):
    """Base for authority actions naming a target user in a room."""

    room_id: str
    target_user_id: str


@dataclass
class InviteRequest(TargetedRoomRequest):
    message_type = "invite"


@dataclass
class ApproveRequest(TargetedRoomRequest):
    message_type = "approve"


@dataclass
class DenyRequest(TargetedRoomRequest):
    message_type = "deny"


@dataclass
class AcceptInvitationRequest(BaseRequest):
    """
    Accept an invitation.

    Attributes:
        room_id: Room the invitation is for
        inviter_id: Identity of the user who sent the invitation
    """

    message_type = "accept_invitation"

    room_id: str
    inviter_id: str


@dataclass
class RelayRequest(BaseRequest):
    """
    A connection-setup message for a single peer.

    The payload is opaque and forwarded verbatim; it only has to be
    present.

    Attributes:
        target_user_id: Recipient identity
        payload: SDP or ICE candidate body
        room_id: Optional room context for the recipient
    """

    target_user_id: str
    payload: Any
    room_id: Optional[str] = None

    def validate(self):
        if not isinstance(self.target_user_id, str) or not self.target_user_id:
            raise ValidationError("'target_user_id' must be a non-empty string")
        if self.payload in ("", {}, []):
            raise ValidationError("'payload' must not be empty")
        if self.room_id is not None and not isinstance(self.room_id, str):
            raise ValidationError("'room_id' must be a string")


@dataclass
class OfferRequest(RelayRequest):
    message_type = "offer"


@dataclass
class AnswerRequest(RelayRequest):
    message_type = "answer"


@dataclass
class IceCandidateRequest(RelayRequest):
    message_type = "ice_candidate"


@dataclass
class EndSessionRequest(BaseRequest):
    """Tell a peer that the direct session is over."""

    message_type = "end_session"

    target_user_id: str
    room_id: Optional[str] = None

    def validate(self):
        super().validate()
        if self.room_id is not None and not isinstance(self.room_id, str):
            raise ValidationError("'room_id' must be a string")


@dataclass
class ChatMessageRequest(BaseRequest):
    """
    Chat text for every joined member of a room.

    Attributes:
        room_id: Room to deliver to
        text: Message text
    """

    message_type = "chat_message"

    room_id: str
    text: str


REQUEST_TYPES = {
    cls.message_type: cls
    for cls in (
        RegisterRequest,
        CreateRoomRequest,
        ListRoomsRequest,
        CheckAccessRequest,
        RequestJoinRequest,
        InviteRequest,
        AcceptInvitationRequest,
        ApproveRequest,
        DenyRequest,
        LeaveRequest,
        ReadyForRelayRequest,
        OfferRequest,
        AnswerRequest,
        IceCandidateRequest,
        EndSessionRequest,
        ChatMessageRequest,
    )
}

RELAY_KINDS = (
    OfferRequest.message_type,
    AnswerRequest.message_type,
    IceCandidateRequest.message_type,
)


def parse_request(message: Dict[str, Any]) -> BaseRequest:
    """
    Build a typed request from a decoded message envelope.

    Args:
        message: Decoded JSON object with ``type`` and optional ``data``

    Returns:
        The request dataclass instance for the message type

    Raises:
        ValidationError: If the envelope, type or fields are invalid
    """
    if not isinstance(message, dict):
        raise ValidationError("Message must be a JSON object")

    message_type = message.get("type")
    request_cls = None
    if isinstance(message_type, str):
        request_cls = REQUEST_TYPES.get(message_type)
    if request_cls is None:
        raise ValidationError(
            f"Unknown message type: {message_type}", "UNKNOWN_TYPE"
        )

    return request_cls.from_dict(message.get("data", {}))
