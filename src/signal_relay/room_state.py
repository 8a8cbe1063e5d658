"""
Room State Management

This module holds the in-memory state of every session room: membership,
pending join requests, outstanding invitations and the room's authority.
A user's standing in a room is encoded by which of the three dictionaries
holds them, so the statuses are disjoint by construction.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from .errors import NotFoundError, ValidationError
from .utils import validate_display_name

logger = logging.getLogger(__name__)

PRIMARY_ROOM_ID = "default_room"
PRIMARY_ROOM_NAME = "Main Session Room"
MAX_ROOM_MEMBERS = 8


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MembershipStatus(Enum):
    """A user's standing in one room."""

    ABSENT = "absent"
    PENDING = "pending"
    INVITED = "invited"
    JOINED = "joined"


class AccessStatus(Enum):
    """Values reported to clients in access_status events."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    INVITED_JOINED = "invited_joined"
    JOINED = "joined"
    DENIED = "denied"
    NOT_JOINED = "not_joined"
    INVITED_PENDING_JOIN = "invited_pending_join"


@dataclass
class MemberInfo:
    """
    A joined member of a room.

    Attributes:
        user_id: Member identity
        display_name: Display name at the time of joining
        joined_at: ISO 8601 timestamp when the member joined
    """

    user_id: str
    display_name: str
    joined_at: str = field(default_factory=_now)


@dataclass
class PendingRequest:
    """
    A join request waiting for the authority's decision.

    The connection handle and display name are snapshots taken when the
    request was made.
    """

    user_id: str
    connection_id: str
    display_name: str
    requested_at: str = field(default_factory=_now)


@dataclass
class Invitation:
    """An outstanding invitation and the authority who issued it."""

    user_id: str
    inviter_id: str
    invited_at: str = field(default_factory=_now)


@dataclass
class Room:
    """
    A session room.

    Attributes:
        room_id: Unique identifier for the room
        room_name: Display name of the room
        authority_id: User who approves requests and issues invitations
        is_primary: Primary rooms are provisioned at startup and never
            destroyed
        created_by: Identity of the creator (None for the primary room)
        members: user_id -> MemberInfo for joined members
        pending: user_id -> PendingRequest
        invitations: user_id -> Invitation
        max_members: Membership limit
        created_at: ISO 8601 timestamp when the room was created
    """

    room_id: str
    room_name: str
    authority_id: Optional[str] = None
    is_primary: bool = False
    created_by: Optional[str] = None
    members: Dict[str, MemberInfo] = field(default_factory=dict)
    pending: Dict[str, PendingRequest] = field(default_factory=dict)
    invitations: Dict[str, Invitation] = field(default_factory=dict)
    max_members: int = MAX_ROOM_MEMBERS
    created_at: str = field(default_factory=_now)

    def status_of(self, user_id: str) -> MembershipStatus:
        """Get a user's membership status in this room."""
        if user_id in self.members:
            return MembershipStatus.JOINED
        if user_id in self.pending:
            return MembershipStatus.PENDING
        if user_id in self.invitations:
            return MembershipStatus.INVITED
        return MembershipStatus.ABSENT

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members

    def participant_list(self) -> List[Dict[str, str]]:
        """Compute the list of joined members from scratch."""
        return [
            {"user_id": info.user_id, "display_name": info.display_name}
            for info in self.members.values()
        ]

    def to_dict(self) -> Dict:
        """Convert room to dictionary for serialization."""
        return {
            "room_id": self.room_id,
            "room_name": self.room_name,
            "authority_id": self.authority_id,
            "is_primary": self.is_primary,
            "member_count": len(self.members),
            "max_members": self.max_members,
            "created_at": self.created_at,
        }


class SessionRegistry:
    """
    Registry of all rooms on this server.

    The primary room is created when the registry is constructed and
    survives emptying; ad-hoc rooms are removed once their last member
    leaves.
    """

    def __init__(
        self,
        primary_room_id: str = PRIMARY_ROOM_ID,
        primary_room_name: str = PRIMARY_ROOM_NAME,
        max_members: int = MAX_ROOM_MEMBERS,
    ):
        """
        Initialize the registry with its primary room.

        Args:
            primary_room_id: ID of the pre-provisioned room
            primary_room_name: Display name of the pre-provisioned room
            max_members: Membership limit applied to every room
        """
        self.max_members = max_members
        self._rooms: Dict[str, Room] = {}
        self.primary_room_id = primary_room_id
        self._rooms[primary_room_id] = Room(
            room_id=primary_room_id,
            room_name=primary_room_name,
            is_primary=True,
            max_members=max_members,
        )
        logger.info(
            f"SessionRegistry initialized with primary room "
            f"'{primary_room_name}' (ID: {primary_room_id})"
        )

    @property
    def primary_room(self) -> Room:
        return self._rooms[self.primary_room_id]

    def create_room(
        self,
        room_name: str,
        created_by: str,
        authority_id: Optional[str] = None,
    ) -> Room:
        """
        Create an ad-hoc room.

        Args:
            room_name: Display name of the room
            created_by: Identity of the creating user
            authority_id: Optional authority for the room

        Returns:
            The created Room object

        Raises:
            ValidationError: If the room name is invalid
        """
        is_valid, error = validate_display_name(room_name, "Room name")
        if not is_valid:
            raise ValidationError(error)

        room = Room(
            room_id=str(uuid.uuid4()),
            room_name=room_name,
            authority_id=authority_id,
            created_by=created_by,
            max_members=self.max_members,
        )
        self._rooms[room.room_id] = room
        logger.info(
            f"Created room '{room_name}' (ID: {room.room_id}) "
            f"by user {created_by}"
        )
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def require_room(self, room_id: str) -> Room:
        """
        Get a room by its ID or raise.

        Raises:
            NotFoundError: If the room does not exist
        """
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFoundError("Room not found.", "ROOM_NOT_FOUND")
        return room

    def delete_room(self, room_id: str) -> bool:
        """
        Delete an ad-hoc room.

        Returns:
            True if the room was deleted, False if it did not exist or is
            the primary room
        """
        room = self._rooms.get(room_id)
        if room is None or room.is_primary:
            return False
        del self._rooms[room_id]
        logger.info(f"Deleted room '{room.room_name}' (ID: {room_id})")
        return True

    def list_rooms(self) -> List[Dict]:
        return [room.to_dict() for room in self._rooms.values()]

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def get_room_count(self) -> int:
        return len(self._rooms)

    def find_member_room(self, user_id: str) -> Optional[Room]:
        """Find the room in which a user is joined, if any."""
        for room in self._rooms.values():
            if user_id in room.members:
                return room
        return None

    def rooms_governed_by(self, user_id: str) -> List[Room]:
        return [
            room
            for room in self._rooms.values()
            if room.authority_id == user_id
        ]

    def discard_requests(self, user_id: str) -> List[str]:
        """
        Drop a user's pending requests and invitations in every room.

        Returns:
            IDs of the rooms that held a record for the user
        """
        affected = []
        for room in self._rooms.values():
            found = room.pending.pop(user_id, None)
            found = room.invitations.pop(user_id, None) or found
            if found:
                affected.append(room.room_id)
        if affected:
            logger.info(
                f"Discarded requests/invitations of {user_id} "
                f"in rooms {affected}"
            )
        return affected
