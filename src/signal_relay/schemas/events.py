"""
Event Schema Definitions

Contains functions for creating the outbound event structures sent to
clients: registration, presence, room membership, access status, peer
introductions and relayed messages.
"""

from typing import Any, Dict, List, Optional


def _event(event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": event_type, "data": data}


def create_registration_successful_event(
    user_id: str,
    connection_id: str,
) -> Dict[str, Any]:
    """
    Create a registration_successful reply.

    Args:
        user_id: Identity that was registered
        connection_id: Server-assigned connection handle

    Returns:
        dict: Event
    """
    return _event(
        "registration_successful",
        {"user_id": user_id, "connection_id": connection_id},
    )


def create_presence_update_event(
    users: Dict[str, Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Create a presence_update broadcast.

    Args:
        users: Mapping of user_id -> {display_name, role, is_online}

    Returns:
        dict: Event
    """
    return _event("presence_update", {"users": users})


def create_room_created_event(room_info: Dict[str, Any]) -> Dict[str, Any]:
    """Create a room_created reply from a room dictionary."""
    return _event("room_created", room_info)


def create_rooms_list_event(rooms: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create a rooms_list reply."""
    return _event("rooms_list", {"rooms": rooms, "total_count": len(rooms)})


def create_access_status_event(room_id: str, status: str) -> Dict[str, Any]:
    """
    Create an access_status notification.

    Args:
        room_id: Room the status refers to
        status: One of the AccessStatus values

    Returns:
        dict: Event
    """
    return _event("access_status", {"room_id": room_id, "status": status})


def create_join_request_event(
    room_id: str,
    requesting_user_id: str,
    requesting_display_name: str,
) -> Dict[str, Any]:
    """
    Create a join_request notification for a room authority.

    Args:
        room_id: Room being requested
        requesting_user_id: Identity of the requester
        requesting_display_name: Display name of the requester

    Returns:
        dict: Event
    """
    return _event(
        "join_request",
        {
            "room_id": room_id,
            "requesting_user_id": requesting_user_id,
            "requesting_display_name": requesting_display_name,
        },
    )


def create_invitation_received_event(
    room_id: str,
    room_name: str,
    inviter_id: str,
    inviter_name: str,
) -> Dict[str, Any]:
    """Create an invitation_received notification for the invitee."""
    return _event(
        "invitation_received",
        {
            "room_id": room_id,
            "room_name": room_name,
            "inviter_id": inviter_id,
            "inviter_name": inviter_name,
        },
    )


def create_participants_update_event(
    room_id: str,
    participants: List[Dict[str, str]],
) -> Dict[str, Any]:
    """
    Create a participants_update broadcast.

    Args:
        room_id: Room ID
        participants: Full list of {user_id, display_name} for joined members

    Returns:
        dict: Event
    """
    return _event(
        "participants_update",
        {"room_id": room_id, "participants": participants},
    )


def create_participant_left_event(
    room_id: str,
    user_id: str,
    display_name: str,
    member_count: int,
    timestamp: str,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a participant_left notice.

    Args:
        room_id: Room ID the participant left
        user_id: Identity of the leaving participant
        display_name: Display name of the leaving participant
        member_count: Member count after the leave
        timestamp: ISO 8601 timestamp
        reason: Optional reason for leaving

    Returns:
        dict: Event
    """
    data = {
        "room_id": room_id,
        "user_id": user_id,
        "display_name": display_name,
        "member_count": member_count,
        "timestamp": timestamp,
    }
    if reason:
        data["reason"] = reason
    return _event("participant_left", data)


def create_initiate_peer_connection_event(
    room_id: str,
    peer_user_id: str,
) -> Dict[str, Any]:
    """Create an initiate_peer_connection notice naming the peer."""
    return _event(
        "initiate_peer_connection",
        {"room_id": room_id, "peer_user_id": peer_user_id},
    )


def create_relay_event(
    kind: str,
    sender_user_id: str,
    room_id: Optional[str],
    payload: Any,
) -> Dict[str, Any]:
    """
    Create a relayed connection-setup message.

    The payload is copied verbatim.
    """
    return _event(
        kind,
        {
            "sender_user_id": sender_user_id,
            "room_id": room_id,
            "payload": payload,
        },
    )


def create_session_ended_event(
    sender_user_id: str,
    room_id: Optional[str],
) -> Dict[str, Any]:
    """Create a session_ended notice."""
    return _event(
        "session_ended",
        {"sender_user_id": sender_user_id, "room_id": room_id},
    )


def create_chat_message_event(
    room_id: str,
    sender_user_id: str,
    sender_display_name: str,
    text: str,
    timestamp: str,
) -> Dict[str, Any]:
    """
    Create a chat_message broadcast.

    Args:
        room_id: Room ID
        sender_user_id: Server-stamped sender identity
        sender_display_name: Sender display name
        text: Message text
        timestamp: ISO 8601 server timestamp

    Returns:
        dict: Event
    """
    return _event(
        "chat_message",
        {
            "room_id": room_id,
            "sender_user_id": sender_user_id,
            "sender_display_name": sender_display_name,
            "text": text,
            "timestamp": timestamp,
        },
    )
