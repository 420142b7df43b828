"""
Machines
--------

Handles the registry of machines and their occupancy state.

Only the :class:`~netcafe.service.manager.session_manager.SessionManager`
calls :meth:`MachineRegistry.set_occupied` and :meth:`MachineRegistry.set_free`.
Administrators change a machine through :meth:`MachineRegistry.update_status`
and remove it with :meth:`MachineRegistry.delete_machine`, both of which refuse
to touch a machine while a session is open on it. Rates are changed with
:meth:`MachineRegistry.set_rate` and :meth:`MachineRegistry.set_rates` at any time.
"""
from datetime import datetime
from typing import Optional, List, Iterable

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import IntegrityError

from netcafe import logger
from netcafe.errors import MachineNotFoundError, SessionMustEndFirstError, MachineNumberTakenError, \
    MachinePrefixNotFoundError
from netcafe.models import Machine, Member, UsageRecord
from netcafe.models.util import MachineStatus
from netcafe.serializer.requests import load_request, MachineRegisterSchema, MachineUpdateSchema, MachineIdSchema, \
    RateSchema, MachineRatesSchema
from netcafe.service.access.usage_records import UsageRecordStore
from netcafe.service.transactions import run_in_transaction


class MachineRegistry:
    """
    Reads and sets the state of machines.

    :param records: The usage record store, used to check for open sessions before status edits.
    """

    def __init__(self, records: UsageRecordStore = None, *, timeout: Optional[float] = None):
        self.records = records if records is not None else UsageRecordStore()
        self._timeout = timeout

    @staticmethod
    async def get_machines(*, status: MachineStatus = None) -> List[Machine]:
        query = Machine.all().order_by("number")
        if status is not None:
            query = query.filter(status=status)
        return await query

    @staticmethod
    async def get_machine(machine_id: int, *, using_db: BaseDBAsyncClient = None, lock=False) -> Optional[Machine]:
        """
        Gets a machine.

        :param lock: Whether to lock the machine's row until the end of the transaction.
        :return: The machine, or None if it doesn't exist.
        """
        query = Machine.filter(id=machine_id)
        if lock:
            query = query.select_for_update()
        return await query.using_db(using_db).first()

    async def register_machine(self, number: str, hourly_rate) -> Machine:
        """
        Adds a new, free, machine to the system.

        :raises MachineNumberTakenError: If the number is already in use by another machine.
        """
        request = load_request(MachineRegisterSchema(), number=number, hourly_rate=hourly_rate)

        async def register_machine(connection):
            if await Machine.filter(number=request["number"]).using_db(connection).exists():
                raise MachineNumberTakenError(request["number"])
            try:
                return await Machine.create(**request, using_db=connection)
            except IntegrityError:
                raise MachineNumberTakenError(request["number"])

        machine = await run_in_transaction(register_machine, timeout=self._timeout)

        logger.info("Registered machine %s at %s per hour", machine.number, machine.hourly_rate)
        return machine

    @staticmethod
    async def set_occupied(machine: Machine, member: Member, start_time: datetime, *, using_db: BaseDBAsyncClient = None):
        """Marks the machine as in use by the member, from the given time."""
        machine.status = MachineStatus.IN_USE
        machine.occupant = member
        machine.session_start = start_time
        await machine.save(using_db=using_db, update_fields=["status", "occupant_id", "session_start"])

    @staticmethod
    async def set_free(machine: Machine, *, using_db: BaseDBAsyncClient = None):
        """Marks the machine as free, clearing the occupant."""
        machine.status = MachineStatus.FREE
        machine.occupant = None
        machine.session_start = None
        await machine.save(using_db=using_db, update_fields=["status", "occupant_id", "session_start"])

    async def set_rate(self, machine_id: int, hourly_rate) -> Machine:
        """
        Changes the hourly rate of a machine. This is allowed at any time, and
        applies to the open session (if any) when it ends.

        :raises MachineNotFoundError: If the machine does not exist.
        """
        machine_id = load_request(MachineIdSchema(), machine_id=machine_id)["machine_id"]
        hourly_rate = load_request(RateSchema(), hourly_rate=hourly_rate)["hourly_rate"]

        async def set_rate(connection):
            machine = await self.get_machine(machine_id, using_db=connection, lock=True)
            if machine is None:
                raise MachineNotFoundError(machine_id)
            machine.hourly_rate = hourly_rate
            await machine.save(using_db=connection, update_fields=["hourly_rate"])
            return machine

        machine = await run_in_transaction(set_rate, timeout=self._timeout)
        logger.info("Set the rate of machine %s to %s per hour", machine.number, hourly_rate)
        return machine

    async def update_status(self, machine_id: int, status: MachineStatus, hourly_rate=None) -> Machine:
        """
        Administratively changes the status (and optionally the rate) of a machine,
        for example to take it offline for maintenance.

        :raises SessionMustEndFirstError: If a session is open on the machine.
        :raises MachineNotFoundError: If the machine does not exist.
        :raises InvalidRequestError: If the status is not one an administrator may set.
        """
        machine_id = load_request(MachineIdSchema(), machine_id=machine_id)["machine_id"]
        update = {"status": status.value if isinstance(status, MachineStatus) else status}
        if hourly_rate is not None:
            update["hourly_rate"] = hourly_rate
        update = load_request(MachineUpdateSchema(), **update)

        async def update_status(connection):
            machine = await self.get_machine(machine_id, using_db=connection, lock=True)
            if machine is None:
                raise MachineNotFoundError(machine_id)

            active = await self.records.find_active_by_machine(machine_id, using_db=connection)
            if active is not None:
                raise SessionMustEndFirstError(machine_id, machine.status, active.id)

            if machine.status is MachineStatus.IN_USE:
                logger.warning("Machine %s was in use with no active session, resetting it", machine.number)

            machine.status = update["status"]
            machine.occupant = None
            machine.session_start = None
            update_fields = ["status", "occupant_id", "session_start"]
            if "hourly_rate" in update:
                machine.hourly_rate = update["hourly_rate"]
                update_fields.append("hourly_rate")

            await machine.save(using_db=connection, update_fields=update_fields)
            return machine

        machine = await run_in_transaction(update_status, timeout=self._timeout)
        logger.info("Set the status of machine %s to %s", machine.number, machine.status.value)
        return machine

    async def set_rates(self, hourly_rate, *, machine_ids: Iterable[int] = None, number_prefix: str = None) -> List[Machine]:
        """
        Changes the hourly rate of many machines at once. The machines are
        picked either by id or by the start of their number, not both.
        Either every machine is changed or none are.

        :return: The changed machines.
        :raises MachineNotFoundError: If any of the ids does not exist.
        :raises MachinePrefixNotFoundError: If no machine number starts with the prefix.
        """
        selection = {"machine_ids": list(machine_ids)} if machine_ids is not None else {}
        if number_prefix is not None:
            selection["number_prefix"] = number_prefix
        request = load_request(MachineRatesSchema(), hourly_rate=hourly_rate, **selection)

        async def set_rates(connection):
            if "machine_ids" in request:
                query = Machine.filter(id__in=request["machine_ids"])
            else:
                query = Machine.filter(number__startswith=request["number_prefix"])

            machines = await query.select_for_update().using_db(connection)

            if "machine_ids" in request:
                missing = set(request["machine_ids"]) - {machine.id for machine in machines}
                if missing:
                    raise MachineNotFoundError(min(missing))
            elif not machines:
                raise MachinePrefixNotFoundError(request["number_prefix"])

            await Machine.filter(id__in=[machine.id for machine in machines]).using_db(connection).update(
                hourly_rate=request["hourly_rate"]
            )
            for machine in machines:
                machine.hourly_rate = request["hourly_rate"]
            return sorted(machines, key=lambda machine: machine.number)

        machines = await run_in_transaction(set_rates, timeout=self._timeout)
        logger.info("Set the rate of %s machines to %s per hour", len(machines), request["hourly_rate"])
        return machines

    async def delete_machine(self, machine_id: int):
        """
        Removes a machine along with its (finished) usage records.

        :raises SessionMustEndFirstError: If a session is open on the machine.
        :raises MachineNotFoundError: If the machine does not exist.
        """
        machine_id = load_request(MachineIdSchema(), machine_id=machine_id)["machine_id"]

        async def delete_machine(connection):
            machine = await self.get_machine(machine_id, using_db=connection, lock=True)
            if machine is None:
                raise MachineNotFoundError(machine_id)

            active = await self.records.find_active_by_machine(machine_id, using_db=connection)
            if active is not None:
                raise SessionMustEndFirstError(machine_id, machine.status, active.id)

            if machine.status is MachineStatus.IN_USE:
                logger.warning("Machine %s was in use with no active session, deleting it anyway", machine.number)

            await UsageRecord.filter(machine_id=machine_id).using_db(connection).delete()
            await machine.delete(using_db=connection)
            return machine

        machine = await run_in_transaction(delete_machine, timeout=self._timeout)
        logger.info("Deleted machine %s", machine.number)
