"""
Model Serializers
-----------------

Defines serializers for the various models in the system.
"""

from marshmallow import Schema, validates_schema, ValidationError
from marshmallow.fields import Integer, Boolean, String, DateTime, Nested

from netcafe.models.util import MachineStatus
from .fields import EnumField, Money


class MemberSchema(Schema):
    """The schema corresponding to the :class:`~netcafe.models.member.Member` model."""

    id = Integer()
    name = String(required=True)
    phone = String(allow_none=True)
    balance = Money()


class MachineSchema(Schema):
    id = Integer()
    number = String(required=True)
    status = EnumField(MachineStatus, required=True)
    hourly_rate = Money(required=True)
    occupant_id = Integer()
    session_start = DateTime()

    @validates_schema
    def assert_occupant_with_status(self, data, **kwargs):
        """Asserts that the occupant and session start are included only while the machine is in use."""
        in_use = data.get("status") is MachineStatus.IN_USE
        if in_use != ("occupant_id" in data) or in_use != ("session_start" in data):
            raise ValidationError("The occupant and session start must be included iff the machine is in use.")


class UsageRecordSchema(Schema):
    id = Integer(required=True)
    member_id = Integer(required=True)
    machine_id = Integer(required=True)

    start_time = DateTime(required=True)
    end_time = DateTime()
    is_active = Boolean(required=True)

    fee = Money()
    estimated_price = Money()
    duration_minutes = Integer()
    hourly_rate = Money()

    @validates_schema
    def assert_end_time_with_fee(self, data, **kwargs):
        """
        Asserts that when a session is complete both the fee and end time are included.
        """
        if "fee" in data and "end_time" not in data:
            raise ValidationError("If the fee is included, you must also include the end time.")
        elif "fee" not in data and "end_time" in data:
            raise ValidationError("If the end time is included, you must also include the fee.")
        if "fee" in data and "estimated_price" in data:
            raise ValidationError("Record should have one of either fee or estimated_price.")


class TopUpResultSchema(Schema):
    member = Nested(MemberSchema(), required=True)
    amount = Money(required=True)
    previous_balance = Money(required=True)
