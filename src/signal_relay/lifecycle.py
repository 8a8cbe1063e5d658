"""
Connection Lifecycle Manager

Owns the side table that maps connection handles to the identity bound on
them, performs registration, and cleans up room and directory state when a
connection goes away.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .access import AccessController
from .directory import Role
from .errors import AuthorizationError
from .presence import PresencePublisher
from .schemas import create_registration_successful_event
from .state import RelayStore
from .transport import ConnectionHub

logger = logging.getLogger(__name__)


@dataclass
class ConnectionSession:
    """
    Per-connection record.

    Attributes:
        connection_id: Server-assigned handle
        user_id: Identity bound by registration, None until registered
        connected_at: ISO 8601 timestamp when the connection opened
    """

    connection_id: str
    user_id: Optional[str] = None
    connected_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ConnectionLifecycleManager:
    """
    Binds and unbinds connections to user identities.

    Disconnect cleanup runs in a fixed order: leave the joined room while
    the directory entry still exists, drop outstanding requests and
    invitations, release authority, unregister, then publish presence.
    """

    def __init__(
        self,
        store: RelayStore,
        hub: ConnectionHub,
        access: AccessController,
        presence: PresencePublisher,
    ):
        self.store = store
        self.hub = hub
        self.access = access
        self.presence = presence
        self._sessions: Dict[str, ConnectionSession] = {}

    def connect(self, connection_id: str) -> ConnectionSession:
        session = ConnectionSession(connection_id=connection_id)
        self._sessions[connection_id] = session
        logger.info(f"New client connected: {connection_id}")
        return session

    def identity_of(self, connection_id: str) -> Optional[str]:
        session = self._sessions.get(connection_id)
        return session.user_id if session else None

    def require_identity(self, connection_id: str) -> str:
        """
        Get the identity bound to a connection.

        Raises:
            AuthorizationError: If the connection has not registered
        """
        user_id = self.identity_of(connection_id)
        if user_id is None:
            raise AuthorizationError(
                "Register before sending this request.", "NOT_REGISTERED"
            )
        return user_id

    def register(
        self,
        connection_id: str,
        user_id: str,
        display_name: str,
        role: Role,
    ):
        """
        Bind a user identity to a connection.

        A connection that registers a different identity releases the old
        one first. If the identity was bound to another connection, that
        connection is detached and its room tags move to this one.

        Raises:
            ValidationError: If user_id or display_name is invalid
        """
        directory = self.store.directory
        session = self._sessions.get(connection_id)
        if session is None:
            session = self.connect(connection_id)

        superseded = directory.register(
            user_id, display_name, role, connection_id
        )
        if session.user_id and session.user_id != user_id:
            self._release_identity(session.user_id)
        session.user_id = user_id

        if superseded:
            old_session = self._sessions.get(superseded)
            if old_session is not None and old_session.user_id == user_id:
                old_session.user_id = None
            self.hub.move_groups(superseded, connection_id)

        self.access.refresh_member_name(user_id)

        if role is Role.AUTHORITY:
            self.access.claim_primary_authority(user_id)
        else:
            self.access.release_authority(user_id)

        self.hub.send(
            connection_id,
            create_registration_successful_event(user_id, connection_id),
        )
        self.presence.publish()

    def disconnect(self, connection_id: str):
        """
        Clean up after a closed connection.

        Only the identity's live connection triggers cleanup; a connection
        superseded by a later registration just drops its side-table entry.
        """
        session = self._sessions.pop(connection_id, None)
        user_id = session.user_id if session else None
        logger.info(
            f"Client disconnected: {connection_id} (User ID: {user_id})"
        )
        if user_id is None:
            return

        if self.store.directory.resolve_connection(user_id) != connection_id:
            logger.debug(
                f"Connection {connection_id} was superseded for {user_id}"
            )
            return

        self._release_identity(user_id)
        self.presence.publish()

    def _release_identity(self, user_id: str):
        registry = self.store.registry
        room = registry.find_member_room(user_id)
        if room is not None:
            self.access.leave(room.room_id, user_id, reason="Disconnected")
        registry.discard_requests(user_id)
        self.access.release_authority(user_id)
        self.store.directory.unregister(user_id)
