"""
Base Schema Classes

This module provides the base class for inbound request schemas. Each
request type is a dataclass with a fixed field set; fields without a
default are required and must be non-empty strings.
"""

from dataclasses import MISSING, dataclass, fields
from typing import Any, ClassVar, Dict, TypeVar

from ..errors import ValidationError

T = TypeVar("T", bound="BaseRequest")


@dataclass
class BaseRequest:
    """
    Base class for request schemas.

    Subclasses set ``message_type`` to the wire ``type`` they handle.
    """

    message_type: ClassVar[str] = ""

    @classmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create an instance from the ``data`` object of a message.

        Args:
            data: Dictionary containing request data.

        Returns:
            Instance of the request class.

        Raises:
            ValidationError: If a required field is missing or not a
                non-empty string.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError(
                f"'{cls.message_type}' data must be an object"
            )

        values = {}
        for f in fields(cls):
            required = f.default is MISSING and f.default_factory is MISSING
            if f.name not in data or data[f.name] is None:
                if required:
                    raise ValidationError(
                        f"Missing required field '{f.name}' "
                        f"for '{cls.message_type}'"
                    )
                continue
            values[f.name] = data[f.name]

        instance = cls(**values)
        instance.validate()
        return instance

    def validate(self):
        """
        Check field types after construction.

        Required fields must be non-empty strings. Subclasses extend this
        for optional or non-string fields.
        """
        for f in fields(self):
            if f.default is not MISSING or f.default_factory is not MISSING:
                continue
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(
                    f"'{f.name}' must be a non-empty string"
                )
