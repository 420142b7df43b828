"""
Request Schemas
---------------

The validated input structures for every operation in the service layer.
Each operation loads its input through one of these schemas before any
transaction is opened, so malformed requests never touch the database.
"""

from decimal import Decimal
from typing import Dict, Any

from marshmallow import Schema, ValidationError, validates_schema
from marshmallow.fields import Integer, String, List, Boolean
from marshmallow.validate import Range, Length

from netcafe.errors import InvalidRequestError
from netcafe.models.util import MachineStatus
from .fields import EnumField, Money


MAX_ID = 2 ** 31 - 1
"""The largest id the storage columns can hold."""

MAX_AMOUNT = Decimal("9999999999.99")
"""The largest balance (and so the largest top up) a member may have."""

MAX_RATE = Decimal("99999999.99")
"""The largest hourly rate a machine may have."""


def Identifier(**kwargs):
    return Integer(strict=True, validate=Range(min=1, max=MAX_ID), **kwargs)


class MemberIdSchema(Schema):
    member_id = Identifier(required=True)


class MachineIdSchema(Schema):
    machine_id = Identifier(required=True)


class StartSessionSchema(MemberIdSchema, MachineIdSchema):
    pass


class EndSessionSchema(MachineIdSchema):
    pass


class TopUpSchema(MemberIdSchema):
    amount = Money(required=True, validate=Range(min=0, max=MAX_AMOUNT, min_inclusive=False))


class RateSchema(Schema):
    hourly_rate = Money(required=True, validate=Range(min=0, max=MAX_RATE))


class MachineRegisterSchema(RateSchema):
    number = String(required=True, validate=Length(min=1, max=32))


class MachineUpdateSchema(Schema):
    """
    An administrative edit of a machine. The status may only be set to one of
    the administrative states; a machine is only ever put in use by a session.
    """

    status = EnumField(MachineStatus)
    hourly_rate = Money(validate=Range(min=0, max=MAX_RATE))

    @validates_schema
    def assert_fields(self, data, **kwargs):
        if not data:
            raise ValidationError("At least one of status or hourly_rate must be supplied.")
        if "status" in data and data["status"] not in MachineStatus.administrative_types():
            raise ValidationError(
                "Only a session can put a machine in use.", "status"
            )


class MachineFilterSchema(Schema):
    status = EnumField(MachineStatus)


class MemberCreateSchema(Schema):
    name = String(required=True, validate=Length(min=1, max=255))
    phone = String(allow_none=True, validate=Length(max=32))


class MachineRatesSchema(RateSchema):
    """
    A rate change for many machines at once, picked either by their ids
    or by the start of their number (for example every `VIP-` machine).
    """

    machine_ids = List(Identifier(), validate=Length(min=1))
    number_prefix = String(validate=Length(min=1, max=32))

    @validates_schema
    def assert_selection(self, data, **kwargs):
        if ("machine_ids" in data) == ("number_prefix" in data):
            raise ValidationError("Exactly one of machine_ids or number_prefix must be supplied.")


class RecordFilterSchema(Schema):
    member_id = Integer(validate=Range(min=1, max=MAX_ID))
    machine_id = Integer(validate=Range(min=1, max=MAX_ID))
    active = Boolean()


class RecordIdsSchema(Schema):
    ids = List(Identifier(), required=True, validate=Length(min=1))


def load_request(schema: Schema, **data: Any) -> Dict[str, Any]:
    """
    Validates the given input against the schema.

    :raises InvalidRequestError: If the data does not validate.
    """
    try:
        return schema.load(data)
    except ValidationError as error:
        raise InvalidRequestError(error.messages) from error
