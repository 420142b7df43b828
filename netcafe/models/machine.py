"""
Machine
-------------------------

Represents a terminal that members can rent. The occupancy fields
(``status``, ``occupant`` and ``session_start``) mirror the machine's
active usage record and are only written by the
:class:`~netcafe.service.manager.session_manager.SessionManager`
(and by the administrative status edit, once no session is open).
"""
from typing import Dict, Any

from tortoise import Model, fields

from netcafe.models.util import MachineStatus


class Machine(Model):
    id = fields.IntField(pk=True)
    number = fields.CharField(max_length=32, unique=True)
    status: MachineStatus = fields.CharEnumField(MachineStatus, default=MachineStatus.FREE)

    occupant = fields.ForeignKeyField(
        "models.Member", related_name="occupied_machines", null=True, on_delete=fields.SET_NULL
    )
    """The member using the machine, present iff the machine is in use."""

    hourly_rate = fields.DecimalField(max_digits=10, decimal_places=2)
    session_start = fields.DatetimeField(null=True)

    def serialize(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "number": self.number,
            "status": self.status,
            "hourly_rate": self.hourly_rate,
        }

        if self.status is MachineStatus.IN_USE:
            data["occupant_id"] = self.occupant_id
            data["session_start"] = self.session_start

        return data

    @property
    def is_free(self) -> bool:
        return self.status is MachineStatus.FREE

    def __str__(self):
        return f"[{self.status.value}] {self.number}"
