from decimal import Decimal

import pytest

from netcafe.errors import InvariantViolationError, SessionActiveError, RecordNotFoundError, InvalidRequestError
from netcafe.models import UsageRecord, Member, Machine
from netcafe.service import UsageRecordStore


async def finished_record(session_manager, member, machine, clock, minutes=10):
    await session_manager.start_session(member.id, machine.id)
    clock.advance(minutes=minutes)
    record, bill = await session_manager.end_session(machine.id)
    return record


async def test_find_active(usage_records: UsageRecordStore, random_session, random_member, random_machine):
    assert (await usage_records.find_active_by_machine(random_machine.id)).id == random_session.id
    assert (await usage_records.find_active_by_member(random_member.id)).id == random_session.id
    assert await usage_records.find_active_by_machine(random_machine.id + 1) is None


async def test_find_active_duplicate(usage_records: UsageRecordStore, random_session, random_member, machine_factory, clock):
    """Assert that more than one open record for a member is reported."""
    other_machine = await machine_factory()
    await UsageRecord.create(member=random_member, machine=other_machine, start_time=clock.now)

    with pytest.raises(InvariantViolationError) as error:
        await usage_records.find_active_by_member(random_member.id)
    assert len(error.value.context["record_ids"]) == 2


async def test_finalize_once(usage_records: UsageRecordStore, random_session, clock):
    """Assert that a record can only be finalized a single time."""
    clock.advance(minutes=1)
    await usage_records.finalize(random_session, clock.now, Decimal("1"))

    with pytest.raises(InvariantViolationError):
        await usage_records.finalize(random_session, clock.now, Decimal("2"))

    assert (await UsageRecord.get(id=random_session.id)).fee == Decimal("1")


async def test_get_records(usage_records: UsageRecordStore, session_manager, random_member, machine_factory, clock):
    """Assert that the records can be filtered, and come back newest first."""
    first, second = await machine_factory(), await machine_factory()
    old = await finished_record(session_manager, random_member, first, clock)
    active = await session_manager.start_session(random_member.id, second.id)

    assert [record.id for record in await usage_records.get_records()] == [active.id, old.id]
    assert [record.id for record in await usage_records.get_records(active=True)] == [active.id]
    assert [record.id for record in await usage_records.get_records(active=False)] == [old.id]
    assert [record.id for record in await usage_records.get_records(machine_id=first.id)] == [old.id]
    assert [record.id for record in await usage_records.get_records(member_id=random_member.id + 1)] == []


async def test_delete_records(usage_records: UsageRecordStore, session_manager, random_member, random_machine, clock):
    records = [await finished_record(session_manager, random_member, random_machine, clock) for _ in range(3)]

    assert await usage_records.delete_records([records[0].id, records[1].id]) == 2
    assert [record.id for record in await UsageRecord.all()] == [records[2].id]


async def test_delete_records_active(usage_records: UsageRecordStore, session_manager, random_member, random_machine, clock):
    """Assert that no records are deleted if any of them is still active."""
    old = await finished_record(session_manager, random_member, random_machine, clock)
    active = await session_manager.start_session(random_member.id, random_machine.id)

    with pytest.raises(SessionActiveError) as error:
        await usage_records.delete_records([old.id, active.id])

    assert error.value.context["record_ids"] == [active.id]
    assert await UsageRecord.all().count() == 2


async def test_delete_records_missing(usage_records: UsageRecordStore, session_manager, random_member, random_machine, clock):
    old = await finished_record(session_manager, random_member, random_machine, clock)

    with pytest.raises(RecordNotFoundError):
        await usage_records.delete_records([old.id, old.id + 1])
    assert await UsageRecord.all().count() == 1


async def test_delete_records_invalid(usage_records: UsageRecordStore):
    with pytest.raises(InvalidRequestError):
        await usage_records.delete_records([])


async def test_record_relations(database):
    """Assert that a record's member and machine resolve to their models."""
    fields_map = UsageRecord._meta.fields_map
    assert fields_map["member"].related_model is Member
    assert fields_map["machine"].related_model is Machine
