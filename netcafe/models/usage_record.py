"""
Usage Record
---------------------------

A usage record represents a single session on a machine. It is
created with no end time and no fee, and finalized exactly once
when the session ends.
"""

from datetime import datetime
from typing import Dict, Any, Optional

from tortoise import Model, fields


class UsageRecord(Model):
    id = fields.IntField(pk=True)
    member = fields.ForeignKeyField("models.Member", related_name="usage_records")
    machine = fields.ForeignKeyField("models.Machine", related_name="usage_records")

    start_time: datetime = fields.DatetimeField()
    end_time: Optional[datetime] = fields.DatetimeField(null=True)

    fee = fields.DecimalField(max_digits=16, decimal_places=6, null=True)
    """The fee of the session, set together with the end time."""

    class Meta:
        ordering = ["-start_time", "-id"]

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    def serialize(self, *, bill=None, estimated_price=None) -> Dict[str, Any]:
        """
        Serializes the record into a format that can be turned into JSON.

        :param bill: The billing breakdown, included when the session was just ended.
        :param estimated_price: The price of an active session so far.
        """
        data = {
            "id": self.id,
            "member_id": self.member_id,
            "machine_id": self.machine_id,
            "start_time": self.start_time,
            "is_active": self.is_active
        }

        if not self.is_active:
            data["end_time"] = self.end_time
            data["fee"] = self.fee
        elif estimated_price is not None:
            data["estimated_price"] = estimated_price

        if bill is not None:
            data["duration_minutes"] = bill.duration_minutes
            data["hourly_rate"] = bill.hourly_rate

        return data
