"""
Validation Utilities

Checks for user-supplied text: chat messages, user display names and room
names. Each returns ``(is_valid, error_message)``.
"""

from typing import Tuple, Optional

MAX_MESSAGE_LENGTH = 5000
MAX_DISPLAY_NAME_LENGTH = 64


def _check_text(value, label: str, limit: int) -> Tuple[bool, Optional[str]]:
    if not isinstance(value, str) or not value.strip():
        return False, f"{label} cannot be empty"
    if len(value) > limit:
        return False, f"{label} too long (max {limit} characters)"
    return True, None


def validate_message_content(content: str) -> Tuple[bool, Optional[str]]:
    """
    Validate chat message text.

    Args:
        content: The message text to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if the text may be delivered
            - error_message: Reason for rejection, None if valid
    """
    return _check_text(content, "Message content", MAX_MESSAGE_LENGTH)


def validate_display_name(
    name: str, label: str = "Display name"
) -> Tuple[bool, Optional[str]]:
    """Validate a user display name or, with ``label``, a room name."""
    return _check_text(name, label, MAX_DISPLAY_NAME_LENGTH)
