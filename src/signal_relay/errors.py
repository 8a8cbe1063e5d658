"""
Error Types for the Signaling Relay

Every rejection raised by a state-mutating operation derives from
SignalingError and carries a machine-readable error code that is sent
back to the requesting client.
"""

from typing import Optional


class SignalingError(Exception):
    """
    Base class for all request rejections.

    Attributes:
        message: Human readable description sent to the client
        error_code: Machine readable error code
    """

    default_code = "SIGNALING_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code


class ValidationError(SignalingError):
    """Missing or malformed request fields."""

    default_code = "INVALID_REQUEST"


class AuthorizationError(SignalingError):
    """Acting without the required role, authority or room standing."""

    default_code = "NOT_AUTHORIZED"


class NotFoundError(SignalingError):
    """Unknown room, unknown user, or a stale request/invitation record."""

    default_code = "NOT_FOUND"


class ConflictError(SignalingError):
    """The user is already a member of, or pending for, the room."""

    default_code = "ALREADY_MEMBER"


class CapacityError(SignalingError):
    """The room is at its membership limit."""

    default_code = "ROOM_FULL"
