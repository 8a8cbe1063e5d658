"""
Signaling Relay Package

This package provides a signaling relay for peer-to-peer sessions: user
directory, session rooms with access control, message relay, presence
broadcasts and the WebSocket server that exposes them.
"""

from .access import AccessController
from .directory import Directory, Role, UserEntry
from .errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    SignalingError,
    ValidationError,
)
from .lifecycle import ConnectionLifecycleManager, ConnectionSession
from .presence import PresencePublisher
from .relay import Relay
from .room_state import (
    AccessStatus,
    Invitation,
    MemberInfo,
    MembershipStatus,
    PendingRequest,
    Room,
    SessionRegistry,
    MAX_ROOM_MEMBERS,
    PRIMARY_ROOM_ID,
    PRIMARY_ROOM_NAME,
)
from .service import SignalingService
from .state import RelayStore
from .transport import Connection, ConnectionHub
from .websocket_server import WebSocketServer

__all__ = [
    "AccessController",
    "Directory",
    "Role",
    "UserEntry",
    "AuthorizationError",
    "CapacityError",
    "ConflictError",
    "NotFoundError",
    "SignalingError",
    "ValidationError",
    "ConnectionLifecycleManager",
    "ConnectionSession",
    "PresencePublisher",
    "Relay",
    "AccessStatus",
    "Invitation",
    "MemberInfo",
    "MembershipStatus",
    "PendingRequest",
    "Room",
    "SessionRegistry",
    "MAX_ROOM_MEMBERS",
    "PRIMARY_ROOM_ID",
    "PRIMARY_ROOM_NAME",
    "SignalingService",
    "RelayStore",
    "Connection",
    "ConnectionHub",
    "WebSocketServer",
]
