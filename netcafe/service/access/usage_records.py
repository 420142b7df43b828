"""
Usage Records
-------------

Creates, looks up and finalizes the records of sessions on machines.

The "active" lookups are the exclusivity checks of the system. They accept
the connection of the transaction the caller is running in, so that the
check and the write that depends on it happen in the same transaction.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Iterable

from tortoise.backends.base.client import BaseDBAsyncClient

from netcafe import logger
from netcafe.errors import InvariantViolationError, RecordNotFoundError, SessionActiveError
from netcafe.models import UsageRecord, Member, Machine
from netcafe.serializer.requests import load_request, RecordIdsSchema
from netcafe.service.transactions import run_in_transaction


class UsageRecordStore:

    def __init__(self, *, timeout: Optional[float] = None):
        self._timeout = timeout

    @staticmethod
    async def create_active(
        member: Member, machine: Machine, start_time: datetime, *, using_db: BaseDBAsyncClient = None
    ) -> UsageRecord:
        """Creates a new, open, record of the member using the machine."""
        return await UsageRecord.create(member=member, machine=machine, start_time=start_time, using_db=using_db)

    async def find_active_by_machine(self, machine_id: int, *, using_db: BaseDBAsyncClient = None) -> Optional[UsageRecord]:
        """
        Gets the active record on the given machine.

        :raises InvariantViolationError: If the machine has more than one active record.
        """
        return await self._find_active(using_db, machine_id=machine_id)

    async def find_active_by_member(self, member_id: int, *, using_db: BaseDBAsyncClient = None) -> Optional[UsageRecord]:
        """
        Gets the active record of the given member.

        :raises InvariantViolationError: If the member has more than one active record.
        """
        return await self._find_active(using_db, member_id=member_id)

    @staticmethod
    async def finalize(
        record: UsageRecord, end_time: datetime, fee: Decimal, *, using_db: BaseDBAsyncClient = None
    ) -> UsageRecord:
        """
        Sets the end time and fee of a record, closing it. A record can only be finalized once.

        :raises InvariantViolationError: If the record was not active.
        """
        updated = await UsageRecord.filter(id=record.id, end_time__isnull=True).using_db(using_db).update(
            end_time=end_time, fee=fee
        )
        if updated != 1:
            raise InvariantViolationError(
                f"Usage record {record.id} was finalized more than once.", record_id=record.id
            )

        record.end_time = end_time
        record.fee = fee
        return record

    @staticmethod
    async def get_record(record_id: int, *, using_db: BaseDBAsyncClient = None) -> Optional[UsageRecord]:
        return await UsageRecord.filter(id=record_id).using_db(using_db).first()

    @staticmethod
    async def get_records(*, member_id: int = None, machine_id: int = None, active: bool = None) -> List[UsageRecord]:
        """
        Gets the usage records, newest first.

        :param member_id: Only include records of this member.
        :param machine_id: Only include records on this machine.
        :param active: Only include active (True) or finished (False) records.
        """
        query = UsageRecord.all()

        if member_id is not None:
            query = query.filter(member_id=member_id)
        if machine_id is not None:
            query = query.filter(machine_id=machine_id)
        if active is not None:
            query = query.filter(end_time__isnull=active)

        return await query

    async def delete_records(self, record_ids: Iterable[int]) -> int:
        """
        Deletes a batch of finished records.

        :return: The number of records deleted.
        :raises SessionActiveError: If any of the records is still active.
        :raises RecordNotFoundError: If any of the records does not exist.
        """
        record_ids = set(load_request(RecordIdsSchema(), ids=list(record_ids))["ids"])

        async def delete_records(connection):
            records = await UsageRecord.filter(id__in=list(record_ids)).using_db(connection).select_for_update()

            missing = record_ids - {record.id for record in records}
            if missing:
                raise RecordNotFoundError(*sorted(missing))

            active = [record.id for record in records if record.is_active]
            if active:
                raise SessionActiveError(*sorted(active))

            return await UsageRecord.filter(id__in=list(record_ids)).using_db(connection).delete()

        deleted = await run_in_transaction(delete_records, timeout=self._timeout)
        logger.info("Deleted %s usage records", deleted)
        return deleted

    @staticmethod
    async def _find_active(using_db, **filters) -> Optional[UsageRecord]:
        records = await UsageRecord.filter(end_time__isnull=True, **filters).using_db(using_db).limit(2)

        if len(records) > 1:
            raise InvariantViolationError(
                "More than one active usage record exists.",
                record_ids=[record.id for record in records], **filters
            )

        return records[0] if records else None
