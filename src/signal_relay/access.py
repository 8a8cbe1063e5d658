"""
Access Controller

Implements the per-room membership state machine:

    ABSENT -> PENDING -> JOINED      (request, then authority approval)
    ABSENT -> INVITED -> JOINED      (invitation, then acceptance)
    ABSENT -> JOINED                 (room without an authority)
    JOINED -> ABSENT                 (leave, disconnect)

Every operation validates first and raises a SignalingError before
touching any state, then mutates and queues its notifications without
yielding to the event loop.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from .errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
)
from .room_state import (
    AccessStatus,
    Invitation,
    MemberInfo,
    MembershipStatus,
    PendingRequest,
    Room,
)
from .schemas import (
    create_access_status_event,
    create_initiate_peer_connection_event,
    create_invitation_received_event,
    create_join_request_event,
    create_participant_left_event,
    create_participants_update_event,
)
from .state import RelayStore
from .transport import ConnectionHub

logger = logging.getLogger(__name__)

_STATUS_REPORT = {
    MembershipStatus.JOINED: AccessStatus.APPROVED,
    MembershipStatus.PENDING: AccessStatus.PENDING_APPROVAL,
    MembershipStatus.INVITED: AccessStatus.INVITED_PENDING_JOIN,
    MembershipStatus.ABSENT: AccessStatus.NOT_JOINED,
}


class AccessController:
    """
    Governs who may enter which room and propagates membership changes.

    Notifications go to single connections (status changes, join requests,
    invitations, peer introductions) or to a room's group (participant
    updates).
    """

    def __init__(self, store: RelayStore, hub: ConnectionHub):
        """
        Initialize the access controller.

        Args:
            store: Shared directory and session registry
            hub: Connection hub used for notifications
        """
        self.store = store
        self.hub = hub

    @property
    def directory(self):
        return self.store.directory

    @property
    def registry(self):
        return self.store.registry

    # Room creation and authority

    def create_room(
        self, creator_id: str, room_name: str, moderated: bool = True
    ) -> Room:
        """
        Create an ad-hoc room and admit its creator.

        An authority-capable creator governs a moderated room; otherwise
        the room admits anyone who asks.

        Args:
            creator_id: Identity of the creating user
            room_name: Display name of the room
            moderated: Whether the creator should govern the room

        Returns:
            The created Room
        """
        creator = self.directory.require(creator_id)
        authority_id = creator_id if moderated and creator.is_authority else None
        room = self.registry.create_room(room_name, creator_id, authority_id)
        self.admit(room.room_id, creator_id, AccessStatus.JOINED)
        return room

    def claim_primary_authority(self, user_id: str) -> bool:
        """
        Give an ungoverned primary room to an authority-capable user.

        The new authority joins the room (unless already joined elsewhere)
        and is told about requests that are still waiting for a decision.

        Returns:
            True if the user became the primary room's authority
        """
        user = self.directory.get(user_id)
        room = self.registry.primary_room
        if user is None or not user.is_authority or room.authority_id:
            return False

        room.authority_id = user_id
        logger.info(
            f"Authority {user_id} assigned to primary room {room.room_id}"
        )

        room.pending.pop(user_id, None)
        room.invitations.pop(user_id, None)
        if user.current_room is None and not room.is_full:
            self.admit(room.room_id, user_id, AccessStatus.JOINED)

        for request in room.pending.values():
            self.hub.send(
                user.connection_id,
                create_join_request_event(
                    room.room_id, request.user_id, request.display_name
                ),
            )
        return True

    def release_authority(self, user_id: str) -> List[str]:
        """
        Clear a user's authority over every room they govern.

        Returns:
            IDs of the rooms left without an authority
        """
        released = []
        for room in self.registry.rooms_governed_by(user_id):
            room.authority_id = None
            released.append(room.room_id)
            logger.warning(
                f"Room {room.room_id} lost its authority {user_id}; "
                f"pending requests wait for a new authority"
            )
        return released

    # Joining

    def request_join(self, room_id: str, user_id: str) -> MembershipStatus:
        """
        Ask to enter a room.

        Rooms without an authority (or a request from the authority itself)
        admit directly; otherwise the request is queued and the authority
        notified. A request still pending in a room that has since lost its
        authority may be repeated and is then admitted directly.

        Returns:
            JOINED or PENDING

        Raises:
            NotFoundError: If the room does not exist
            ConflictError: If the user is not ABSENT from the room
            CapacityError: If a direct admission finds the room full
        """
        room = self.registry.require_room(room_id)
        user = self.directory.require(user_id)

        status = room.status_of(user_id)
        if status is MembershipStatus.INVITED:
            raise ConflictError(
                "You have an invitation to this room; accept it instead."
            )
        stranded = (
            status is MembershipStatus.PENDING and room.authority_id is None
        )
        if status is not MembershipStatus.ABSENT and not stranded:
            raise ConflictError(
                "You are already in the room or your request is pending."
            )

        if room.authority_id is None or room.authority_id == user_id:
            self.admit(room_id, user_id, AccessStatus.JOINED)
            return MembershipStatus.JOINED

        room.pending[user_id] = PendingRequest(
            user_id=user_id,
            connection_id=user.connection_id,
            display_name=user.display_name,
        )
        logger.info(f"User {user_id} requested to join room {room_id}")

        self.hub.send(
            user.connection_id,
            create_access_status_event(
                room_id, AccessStatus.PENDING_APPROVAL.value
            ),
        )
        authority_connection = self.directory.resolve_connection(
            room.authority_id
        )
        self.hub.send(
            authority_connection,
            create_join_request_event(room_id, user_id, user.display_name),
        )
        return MembershipStatus.PENDING

    def invite(self, room_id: str, inviter_id: str, invitee_id: str):
        """
        Invite an online user into a room.

        Raises:
            NotFoundError: If the room or invitee does not exist
            AuthorizationError: If the inviter is not the room's authority
            ConflictError: If the invitee is not ABSENT from the room
        """
        room = self.registry.require_room(room_id)
        self._require_authority(room, inviter_id)
        invitee = self.directory.require(invitee_id)

        if room.status_of(invitee_id) is not MembershipStatus.ABSENT:
            raise ConflictError(
                "User is already in the room or has a pending request."
            )

        room.invitations[invitee_id] = Invitation(
            user_id=invitee_id, inviter_id=inviter_id
        )
        logger.info(
            f"Authority {inviter_id} invited {invitee_id} to room {room_id}"
        )

        self.hub.send(
            invitee.connection_id,
            create_invitation_received_event(
                room_id,
                room.room_name,
                inviter_id,
                self.directory.display_name_of(inviter_id),
            ),
        )

    def accept_invitation(
        self, room_id: str, user_id: str, claimed_inviter_id: str
    ):
        """
        Accept an invitation naming the user who sent it.

        Raises:
            NotFoundError: If there is no invitation from that inviter
            CapacityError: If the room is full
        """
        room = self.registry.get_room(room_id)
        invitation = room.invitations.get(user_id) if room else None
        if invitation is None or invitation.inviter_id != claimed_inviter_id:
            raise NotFoundError(
                "Invalid or expired invitation.", "INVALID_INVITATION"
            )
        self.admit(room_id, user_id, AccessStatus.INVITED_JOINED)

    def approve(self, room_id: str, authority_id: str, target_id: str):
        """
        Approve a pending join request.

        Raises:
            NotFoundError: If the room or the pending request does not exist
            AuthorizationError: If the caller is not the room's authority
            CapacityError: If the room is full (the request stays pending)
        """
        room = self.registry.require_room(room_id)
        self._require_authority(room, authority_id)
        if target_id not in room.pending:
            raise NotFoundError("Join request not found.", "REQUEST_NOT_FOUND")
        if target_id not in self.directory:
            room.pending.pop(target_id)
            raise NotFoundError(
                "Requesting user is no longer online.", "REQUEST_NOT_FOUND"
            )

        self.admit(room_id, target_id, AccessStatus.APPROVED)
        logger.info(
            f"Authority {authority_id} approved {target_id} for room {room_id}"
        )

    def deny(self, room_id: str, authority_id: str, target_id: str):
        """
        Deny a pending join request.

        Raises:
            NotFoundError: If the room or the pending request does not exist
            AuthorizationError: If the caller is not the room's authority
        """
        room = self.registry.require_room(room_id)
        self._require_authority(room, authority_id)
        request = room.pending.pop(target_id, None)
        if request is None:
            raise NotFoundError("Join request not found.", "REQUEST_NOT_FOUND")

        connection_id = (
            self.directory.resolve_connection(target_id)
            or request.connection_id
        )
        self.hub.send(
            connection_id,
            create_access_status_event(room_id, AccessStatus.DENIED.value),
        )
        logger.info(
            f"Authority {authority_id} denied request from {target_id} "
            f"for room {room_id}"
        )

    def admit(
        self,
        room_id: str,
        user_id: str,
        status: AccessStatus = AccessStatus.JOINED,
    ) -> bool:
        """
        Make a user a joined member of a room.

        Shared by every joining path. A user joined to another room leaves
        it first. Admitting an already joined user does nothing.

        Args:
            room_id: The room ID
            user_id: The user to admit
            status: Access status reported to the joining user

        Returns:
            True if the user was added, False if already joined

        Raises:
            NotFoundError: If the room or user does not exist
            CapacityError: If the room is full
        """
        room = self.registry.require_room(room_id)
        if room.is_member(user_id):
            logger.debug(f"User {user_id} already joined room {room_id}")
            return False

        user = self.directory.require(user_id)
        if room.is_full:
            raise CapacityError("Room is full.")

        previous = self.registry.find_member_room(user_id)
        if previous is not None:
            self.leave(previous.room_id, user_id, reason="Moved to another room")

        room.pending.pop(user_id, None)
        room.invitations.pop(user_id, None)
        room.members[user_id] = MemberInfo(
            user_id=user_id, display_name=user.display_name
        )
        self.directory.set_current_room(user_id, room_id)
        self.hub.join_group(user.connection_id, room_id)
        logger.info(
            f"User {user.display_name} (ID: {user_id}) {status.value} "
            f"room {room_id}"
        )

        self.hub.send(
            user.connection_id,
            create_access_status_event(room_id, status.value),
        )
        self._broadcast_participants(room)
        return True

    # Leaving

    def leave(
        self, room_id: str, user_id: str, reason: Optional[str] = None
    ):
        """
        Remove a joined member from a room.

        Clears the room's authority if the leaver held it and destroys an
        emptied ad-hoc room.

        Raises:
            NotFoundError: If the room does not exist
            AuthorizationError: If the user is not joined to the room
        """
        room = self.registry.require_room(room_id)
        info = room.members.pop(user_id, None)
        if info is None:
            raise AuthorizationError(
                "You are not a member of this room.", "NOT_MEMBER"
            )

        user = self.directory.get(user_id)
        if user is not None:
            if user.current_room == room_id:
                self.directory.set_current_room(user_id, None)
            self.hub.leave_group(user.connection_id, room_id)
            self.hub.send(
                user.connection_id,
                create_access_status_event(
                    room_id, AccessStatus.NOT_JOINED.value
                ),
            )
        logger.info(f"User {user_id} left room {room_id}")

        if room.authority_id == user_id:
            room.authority_id = None
            logger.warning(
                f"Authority {user_id} left room {room_id}; "
                f"room has no authority"
            )

        self._broadcast_participants(room)
        self.hub.broadcast_to_group(
            room_id,
            create_participant_left_event(
                room_id,
                user_id,
                info.display_name,
                len(room.members),
                datetime.now(timezone.utc).isoformat(),
                reason,
            ),
        )

        if not room.members and not room.is_primary:
            self.registry.delete_room(room_id)

    def refresh_member_name(self, user_id: str) -> bool:
        """
        Copy a joined user's current display name into their member record.

        The room is sent a participants_update when the name changed.

        Returns:
            True if a member record was updated
        """
        room = self.registry.find_member_room(user_id)
        display_name = self.directory.display_name_of(user_id)
        if room is None or display_name is None:
            return False
        info = room.members[user_id]
        if info.display_name == display_name:
            return False
        info.display_name = display_name
        self._broadcast_participants(room)
        return True

    # Peer introductions and status queries

    def ready_for_relay(self, room_id: str, user_id: str) -> int:
        """
        Introduce a joined member to every other member of the room.

        Both sides of each pair receive an initiate_peer_connection notice
        naming the other.

        Returns:
            Number of peers introduced

        Raises:
            NotFoundError: If the room does not exist
            AuthorizationError: If the user is not joined to the room
        """
        room = self.registry.require_room(room_id)
        if not room.is_member(user_id):
            raise AuthorizationError(
                "You are not a member of this room.", "NOT_MEMBER"
            )

        own_connection = self.directory.resolve_connection(user_id)
        introduced = 0
        for peer_id in list(room.members):
            if peer_id == user_id:
                continue
            self.hub.send(
                own_connection,
                create_initiate_peer_connection_event(room_id, peer_id),
            )
            self.hub.send(
                self.directory.resolve_connection(peer_id),
                create_initiate_peer_connection_event(room_id, user_id),
            )
            introduced += 1

        logger.info(
            f"User {user_id} ready for relay in room {room_id}, "
            f"introduced to {introduced} peers"
        )
        return introduced

    def access_status(self, room_id: str, user_id: str) -> AccessStatus:
        """Report a user's standing in a room as a client-facing status."""
        room = self.registry.require_room(room_id)
        return _STATUS_REPORT[room.status_of(user_id)]

    # Helpers

    def _require_authority(self, room: Room, user_id: str):
        if room.authority_id is None or room.authority_id != user_id:
            raise AuthorizationError("You are not the authority of this room.")

    def _broadcast_participants(self, room: Room):
        participants = room.participant_list()
        self.hub.broadcast_to_group(
            room.room_id,
            create_participants_update_event(room.room_id, participants),
        )
        logger.debug(
            f"Broadcast participants for room {room.room_id}: {participants}"
        )
