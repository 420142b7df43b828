"""
Fields
-------

Defines some additional fields so that the Schemas can
serialize to and from additional native python data types.
"""

from decimal import ROUND_HALF_UP
from enum import Enum
from typing import Union, Optional, Type

from marshmallow import fields, ValidationError


class EnumField(fields.Field):
    """
    A field that serializes an :class:`~enum.Enum` to a :class:`str` and back.
    """

    def __init__(self, enum_type: Type[Enum], *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not issubclass(enum_type, Enum):
            raise ValidationError(f"Expected enum type, got {type(enum_type)} instead")
        self._enum_type = enum_type

    def _serialize(self, value: Union[Enum, str], attr, obj, **kwargs) -> Optional[str]:
        """Converts an enum (or one of its values) to its value."""
        if isinstance(value, self._enum_type):
            return value.value
        if value in [enum.value for enum in self._enum_type]:
            return value
        return None

    def _deserialize(self, value: str, attr, data, **kwargs) -> Optional[Enum]:
        """Converts a string back to the enum type T."""
        try:
            return self._enum_type(value)
        except (ValueError, TypeError):
            raise ValidationError(
                f"Must be one of: {', '.join(enum.value for enum in self._enum_type)}."
            )

    def _jsonschema_type_mapping(self):
        """Defines the jsonschema type for the object."""
        return {
            'type': 'string',
            'enum': [enum.value for enum in self._enum_type]
        }


class Money(fields.Decimal):
    """
    A monetary amount. Amounts are kept at full precision internally and
    only rounded to whole cents (as a string, to keep it exact) when presented.
    """

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("as_string", True)
        kwargs.setdefault("places", 2)
        kwargs.setdefault("rounding", ROUND_HALF_UP)
        super().__init__(*args, **kwargs)

    def _jsonschema_type_mapping(self):
        """Defines the jsonschema type for the object."""
        return {
            'type': 'string',
        }


def Many(schema):
    return fields.List(fields.Nested(schema))
