"""
Machine Related Views
-------------------------

Handles all the machine CRUD, and looking at the session on a machine.
"""
from http import HTTPStatus

from aiohttp import web
from aiohttp_apispec import docs

from netcafe.errors import NoActiveSessionError
from netcafe.models import Machine
from netcafe.serializer import JSendSchema, JSendStatus, Many
from netcafe.serializer.decorators import expects, returns
from netcafe.serializer.models import MachineSchema, UsageRecordSchema
from netcafe.serializer.requests import MachineRegisterSchema, MachineUpdateSchema, MachineFilterSchema, \
    MachineRatesSchema, load_request
from netcafe.service import MachineRegistry
from netcafe.views.base import BaseView
from netcafe.views.decorators import match_getter


class MachinesView(BaseView):
    """
    Gets or adds to the list of machines.
    """
    url = "/machines"
    name = "machines"

    @docs(summary="Get All Machines")
    @expects(None)
    @returns(JSendSchema.of(machines=Many(MachineSchema())))
    async def get(self):
        """Gets the machines, optionally only those with a given ``?status=``."""
        query = load_request(MachineFilterSchema(), **dict(self.request.query))
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"machines": [
                machine.serialize() for machine in await self.machine_registry.get_machines(**query)
            ]}
        }

    @docs(summary="Register A Machine")
    @expects(MachineRegisterSchema())
    @returns(JSendSchema.of(machine=MachineSchema()), HTTPStatus.CREATED)
    async def post(self):
        machine = await self.machine_registry.register_machine(**self.request["data"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"machine": machine.serialize()}
        }


class MachineView(BaseView):
    """
    Gets, updates or deletes a single machine.
    """
    url = "/machines/{id}"
    name = "machine"
    with_machine = match_getter(MachineRegistry.get_machine, 'machine', machine_id='id')

    @with_machine
    @docs(summary="Get A Machine")
    @expects(None)
    @returns(JSendSchema.of(machine=MachineSchema()))
    async def get(self, machine: Machine):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"machine": machine.serialize()}
        }

    @with_machine
    @docs(summary="Update A Machine")
    @expects(MachineUpdateSchema())
    @returns(JSendSchema.of(machine=MachineSchema()))
    async def patch(self, machine: Machine):
        """
        Changes the status and / or the hourly rate of a machine.

        The rate can be changed at any time, and applies to the open session when
        it ends. The status may only be set to ``free`` or ``offline``, and only
        when no session is open on the machine.
        """
        update = self.request["data"]
        if "status" in update:
            machine = await self.machine_registry.update_status(machine.id, **update)
        else:
            machine = await self.machine_registry.set_rate(machine.id, update["hourly_rate"])

        return {
            "status": JSendStatus.SUCCESS,
            "data": {"machine": machine.serialize()}
        }

    @with_machine
    @docs(summary="Delete A Machine")
    async def delete(self, machine: Machine):
        """Deletes a machine and its usage history. Machines in use can not be deleted."""
        await self.machine_registry.delete_machine(machine.id)
        raise web.HTTPNoContent


class MachineRatesView(BaseView):
    """
    Changes the rate of many machines at once.
    """
    url = "/machines/rates"
    name = "machine_rates"

    @docs(summary="Change The Rate Of Many Machines")
    @expects(MachineRatesSchema())
    @returns(JSendSchema.of(machines=Many(MachineSchema())))
    async def patch(self):
        """
        Sets the hourly rate of every machine in ``machine_ids``, or of every machine
        whose number starts with ``number_prefix``. If any id is missing, nothing changes.
        """
        machines = await self.machine_registry.set_rates(**self.request["data"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"machines": [machine.serialize() for machine in machines]}
        }


class MachineSessionView(BaseView):
    """
    Gets the session currently open on a machine.
    """
    url = "/machines/{id}/session"
    name = "machine_session"
    with_machine = match_getter(MachineRegistry.get_machine, 'machine', machine_id='id')

    @with_machine
    @docs(summary="Get Current Session On Machine")
    @returns(
        no_session=(JSendSchema(), HTTPStatus.NOT_FOUND),
        session_exists=JSendSchema.of(session=UsageRecordSchema(only=(
            "id", "member_id", "machine_id", "start_time", "is_active", "estimated_price"
        )))
    )
    async def get(self, machine: Machine):
        try:
            record, estimated_price = await self.session_manager.active_session(machine.id)
        except NoActiveSessionError as error:
            return "no_session", {
                "status": JSendStatus.FAIL,
                "data": {"message": error.message, "reason": error.reason}
            }

        return "session_exists", {
            "status": JSendStatus.SUCCESS,
            "data": {"session": record.serialize(estimated_price=estimated_price)}
        }
