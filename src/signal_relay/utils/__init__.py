"""
Utilities for the Signaling Relay

This module contains utility functions for validating chat text and
display names.
"""

from .validation import (
    MAX_DISPLAY_NAME_LENGTH,
    MAX_MESSAGE_LENGTH,
    validate_display_name,
    validate_message_content,
)

__all__ = [
    "MAX_DISPLAY_NAME_LENGTH",
    "MAX_MESSAGE_LENGTH",
    "validate_display_name",
    "validate_message_content",
]
