"""
Schemas for the Signaling Relay

This module contains the typed inbound request definitions and the
builders for outbound events and responses.
"""

from .requests import (
    REQUEST_TYPES,
    RELAY_KINDS,
    ROLE_AUTHORITY,
    ROLE_ORDINARY,
    AcceptInvitationRequest,
    AnswerRequest,
    ApproveRequest,
    ChatMessageRequest,
    CheckAccessRequest,
    CreateRoomRequest,
    DenyRequest,
    EndSessionRequest,
    IceCandidateRequest,
    InviteRequest,
    LeaveRequest,
    ListRoomsRequest,
    OfferRequest,
    ReadyForRelayRequest,
    RegisterRequest,
    RequestJoinRequest,
    parse_request,
)
from .events import (
    create_access_status_event,
    create_chat_message_event,
    create_initiate_peer_connection_event,
    create_invitation_received_event,
    create_join_request_event,
    create_participant_left_event,
    create_participants_update_event,
    create_presence_update_event,
    create_registration_successful_event,
    create_relay_event,
    create_room_created_event,
    create_rooms_list_event,
    create_session_ended_event,
)
from .responses import create_error_response

__all__ = [
    "REQUEST_TYPES",
    "RELAY_KINDS",
    "ROLE_AUTHORITY",
    "ROLE_ORDINARY",
    "AcceptInvitationRequest",
    "AnswerRequest",
    "ApproveRequest",
    "ChatMessageRequest",
    "CheckAccessRequest",
    "CreateRoomRequest",
    "DenyRequest",
    "EndSessionRequest",
    "IceCandidateRequest",
    "InviteRequest",
    "LeaveRequest",
    "ListRoomsRequest",
    "OfferRequest",
    "ReadyForRelayRequest",
    "RegisterRequest",
    "RequestJoinRequest",
    "parse_request",
    "create_access_status_event",
    "create_chat_message_event",
    "create_initiate_peer_connection_event",
    "create_invitation_received_event",
    "create_join_request_event",
    "create_participant_left_event",
    "create_participants_update_event",
    "create_presence_update_event",
    "create_registration_successful_event",
    "create_relay_event",
    "create_room_created_event",
    "create_rooms_list_event",
    "create_session_ended_event",
    "create_error_response",
]
