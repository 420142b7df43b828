"""
Session Manager
---------------

This module is what handles all the sessions in the system.

Responsibilities
================

This object handles everything needed for members using machines.

- starting a session (check in)
- ending a session and billing the member (check out)
- getting active sessions and estimating their price

Each operation runs as one transaction. The machine row, then the member
row, are locked at their first read and held until the transaction ends,
so two requests for the same machine or member are serialized and cannot
both see it as free. Any error rolls back everything the operation wrote.

The fee is computed with the rate of the machine at the time the session
ends, so a rate change during a session applies to the whole session.
"""

from datetime import datetime
from decimal import Decimal
from typing import Tuple, Callable, Optional, List

from netcafe import logger
from netcafe.errors import MemberNotFoundError, MemberAlreadyActiveError, MachineNotFoundError, MachineBusyError, \
    NoActiveSessionError, InvariantViolationError, InsufficientBalanceError
from netcafe.models import UsageRecord
from netcafe.models.util import MachineStatus, utcnow
from netcafe.pricing import Bill, get_bill, get_price_estimate
from netcafe.serializer.requests import load_request, StartSessionSchema, EndSessionSchema
from netcafe.service.access.machines import MachineRegistry
from netcafe.service.access.members import MemberLedger
from netcafe.service.access.usage_records import UsageRecordStore
from netcafe.service.transactions import run_in_transaction


class SessionManager:
    """
    Handles the lifecycle of sessions in the system. This is the only writer of the
    session related fields of machines and usage records.

    :param ledger: The member ledger to bill.
    :param registry: The machine registry.
    :param records: The usage record store.
    :param clock: Returns the current (timezone aware) time.
    :param timeout: How long a single transaction may take, in seconds.
    """

    def __init__(
        self,
        ledger: MemberLedger = None,
        registry: MachineRegistry = None,
        records: UsageRecordStore = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        timeout: Optional[float] = None
    ):
        self.records = records if records is not None else UsageRecordStore(timeout=timeout)
        self.ledger = ledger if ledger is not None else MemberLedger(self.records, timeout=timeout)
        self.registry = registry if registry is not None else MachineRegistry(self.records, timeout=timeout)
        self._clock = clock
        self._timeout = timeout

    async def start_session(self, member_id: int, machine_id: int) -> UsageRecord:
        """
        Starts a session for a member on a machine.

        :raises InvalidRequestError: If the ids are missing or malformed.
        :raises MemberNotFoundError: If the member does not exist.
        :raises MemberAlreadyActiveError: If the member already has a session open.
        :raises MachineNotFoundError: If the machine does not exist.
        :raises MachineBusyError: If the machine is not free.
        """
        request = load_request(StartSessionSchema(), member_id=member_id, machine_id=machine_id)
        member_id, machine_id = request["member_id"], request["machine_id"]

        async def start_session(connection):
            machine = await self.registry.get_machine(machine_id, using_db=connection, lock=True)
            member = await self.ledger.get_member(member_id, using_db=connection, lock=True)

            if member is None:
                raise MemberNotFoundError(member_id)

            active = await self.records.find_active_by_member(member_id, using_db=connection)
            if active is not None:
                raise MemberAlreadyActiveError(member_id, active.id)

            if machine is None:
                raise MachineNotFoundError(machine_id)

            if not machine.is_free:
                raise MachineBusyError(machine_id, machine.status)

            occupying = await self.records.find_active_by_machine(machine_id, using_db=connection)
            if occupying is not None:
                raise InvariantViolationError(
                    "The machine is marked free but has an active session.",
                    machine_id=machine_id, record_id=occupying.id
                )

            start_time = self._clock()
            record = await self.records.create_active(member, machine, start_time, using_db=connection)
            await self.registry.set_occupied(machine, member, start_time, using_db=connection)
            return record

        try:
            record = await run_in_transaction(start_session, timeout=self._timeout)
        except InvariantViolationError as error:
            logger.error("Could not start session on machine %s: %s (%s)", machine_id, error.message, error.context)
            raise

        logger.info("Member %s started session %s on machine %s", member_id, record.id, machine_id)
        return record

    async def end_session(self, machine_id: int) -> Tuple[UsageRecord, Bill]:
        """
        Ends the session on a machine, billing the member at the current rate of the machine.

        :return: The finished record, and the breakdown of the bill.
        :raises InvalidRequestError: If the machine id is missing or malformed.
        :raises NoActiveSessionError: If no session is open on the machine.
        :raises InsufficientBalanceError: If the member can not afford the session. Nothing is changed.
        :raises InvariantViolationError: If the machine has more than one session open.
        """
        machine_id = load_request(EndSessionSchema(), machine_id=machine_id)["machine_id"]

        async def end_session(connection):
            machine = await self.registry.get_machine(machine_id, using_db=connection, lock=True)

            record = await self.records.find_active_by_machine(machine_id, using_db=connection)
            if record is None:
                raise NoActiveSessionError(machine_id)

            if machine is None or machine.status is not MachineStatus.IN_USE:
                raise InvariantViolationError(
                    "The machine has an active session but is not in use.",
                    machine_id=machine_id, record_id=record.id
                )

            member = await self.ledger.get_member(record.member_id, using_db=connection, lock=True)
            if member is None:
                raise InvariantViolationError(
                    "The member of an active session does not exist.",
                    member_id=record.member_id, record_id=record.id
                )

            end_time = self._clock()
            bill = get_bill(record.start_time, end_time, machine.hourly_rate)

            await self.ledger.adjust_balance(member, -bill.fee, using_db=connection)
            record = await self.records.finalize(record, end_time, bill.fee, using_db=connection)
            await self.registry.set_free(machine, using_db=connection)
            return record, bill

        try:
            record, bill = await run_in_transaction(end_session, timeout=self._timeout)
        except InsufficientBalanceError as error:
            logger.info("Could not end session on machine %s: %s", machine_id, error.message)
            raise
        except InvariantViolationError as error:
            logger.error("Could not end session on machine %s: %s (%s)", machine_id, error.message, error.context)
            raise

        logger.info(
            "Member %s ended session %s on machine %s after %s minutes, charged %s",
            record.member_id, record.id, machine_id, bill.duration_minutes, bill.fee
        )
        return record, bill

    async def active_session(self, machine_id: int) -> Tuple[UsageRecord, Decimal]:
        """
        Gets the open session on a machine with its price so far.

        :raises NoActiveSessionError: If no session is open on the machine.
        :raises MachineNotFoundError: If the machine does not exist.
        """
        machine_id = load_request(EndSessionSchema(), machine_id=machine_id)["machine_id"]

        machine = await self.registry.get_machine(machine_id)
        if machine is None:
            raise MachineNotFoundError(machine_id)

        record = await self.records.find_active_by_machine(machine_id)
        if record is None:
            raise NoActiveSessionError(machine_id)

        return record, get_price_estimate(record.start_time, self._clock(), machine.hourly_rate)

    async def active_sessions(self) -> List[UsageRecord]:
        """Gets all the open sessions."""
        return await self.records.get_records(active=True)
