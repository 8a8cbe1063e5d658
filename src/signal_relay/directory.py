"""
User Directory

Tracks which users are online: identity -> connection handle, display
name, role and the room the user is currently joined to.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from .errors import NotFoundError, ValidationError
from .utils import validate_display_name

logger = logging.getLogger(__name__)


class Role(Enum):
    """Role flag asserted by a client at registration."""

    ORDINARY = "ordinary"
    AUTHORITY = "authority"


@dataclass
class UserEntry:
    """
    A registered user.

    Attributes:
        user_id: Opaque unique identity
        display_name: Name shown to other users
        role: Whether the user may act as a room authority
        connection_id: Handle of the bound connection
        current_room: Room the user is joined to, if any
        registered_at: ISO 8601 timestamp of the latest registration
    """

    user_id: str
    display_name: str
    role: Role
    connection_id: Optional[str]
    current_room: Optional[str] = None
    registered_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def is_authority(self) -> bool:
        return self.role is Role.AUTHORITY

    def to_presence(self) -> Dict:
        """Convert to the presence snapshot entry."""
        return {
            "display_name": self.display_name,
            "role": self.role.value,
            "is_online": True,
        }


class Directory:
    """
    Single source of truth for who is online.

    At most one connection handle is bound per identity; registering again
    under the same identity replaces the handle.
    """

    def __init__(self):
        self._users: Dict[str, UserEntry] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)

    def register(
        self,
        user_id: str,
        display_name: str,
        role: Role,
        connection_id: str,
    ) -> Optional[str]:
        """
        Bind an identity to a connection.

        Args:
            user_id: Identity to register
            display_name: Display name for the user
            role: Role flag
            connection_id: Connection handle to bind

        Returns:
            The previously bound connection handle if it differs from
            ``connection_id``, otherwise None

        Raises:
            ValidationError: If user_id or display_name is missing
        """
        if not user_id or not display_name:
            raise ValidationError("Invalid user data.")
        is_valid, error = validate_display_name(display_name)
        if not is_valid:
            raise ValidationError(error)

        previous = self._users.get(user_id)
        superseded = None
        current_room = None
        if previous is not None:
            current_room = previous.current_room
            if previous.connection_id != connection_id:
                superseded = previous.connection_id

        self._users[user_id] = UserEntry(
            user_id=user_id,
            display_name=display_name,
            role=role,
            connection_id=connection_id,
            current_room=current_room,
        )

        if superseded:
            logger.info(
                f"User {user_id} re-registered on {connection_id}, "
                f"superseding {superseded}"
            )
        else:
            logger.info(
                f"User registered: {display_name} (ID: {user_id}, "
                f"role: {role.value}, connection: {connection_id})"
            )
        return superseded

    def unregister(self, user_id: str) -> Optional[UserEntry]:
        """
        Remove an identity entirely.

        Returns:
            The removed entry, or None if the identity was not registered
        """
        entry = self._users.pop(user_id, None)
        if entry:
            logger.info(f"User unregistered: {user_id}")
        return entry

    def get(self, user_id: str) -> Optional[UserEntry]:
        return self._users.get(user_id)

    def require(self, user_id: str) -> UserEntry:
        """
        Get a registered user or raise.

        Raises:
            NotFoundError: If the user is not online
        """
        entry = self._users.get(user_id)
        if entry is None:
            raise NotFoundError("User not found.", "USER_NOT_FOUND")
        return entry

    def resolve_connection(self, user_id: str) -> Optional[str]:
        """
        Look up the connection handle bound to an identity.

        Returns:
            The connection handle, or None if the user is offline
        """
        entry = self._users.get(user_id)
        if entry is None:
            return None
        return entry.connection_id

    def display_name_of(self, user_id: str) -> Optional[str]:
        entry = self._users.get(user_id)
        return entry.display_name if entry else None

    def set_current_room(self, user_id: str, room_id: Optional[str]):
        """Record the room a user is joined to (None to clear)."""
        entry = self._users.get(user_id)
        if entry:
            entry.current_room = room_id

    def users(self) -> List[UserEntry]:
        return list(self._users.values())

    def snapshot(self) -> Dict[str, Dict]:
        """
        Build the full presence snapshot.

        Returns:
            Mapping of user_id -> {display_name, role, is_online}
        """
        return {
            user_id: entry.to_presence()
            for user_id, entry in self._users.items()
        }
