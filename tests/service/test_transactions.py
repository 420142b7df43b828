import asyncio

import pytest

from netcafe.errors import TransactionTimeoutError, StorageError, MemberNotFoundError
from netcafe.models import Member, Machine
from netcafe.service.transactions import run_in_transaction


async def test_commit(database):
    """Assert that the result of a successful operation is returned and kept."""

    async def create_member(connection):
        return await Member.create(name="Ada", using_db=connection)

    member = await run_in_transaction(create_member)
    assert (await Member.get(id=member.id)).name == "Ada"


async def test_rollback_on_service_error(database):
    """Assert that a business error undoes everything the operation did, and is passed on unchanged."""

    async def create_then_fail(connection):
        await Member.create(name="Ada", using_db=connection)
        raise MemberNotFoundError(42)

    with pytest.raises(MemberNotFoundError):
        await run_in_transaction(create_then_fail)

    assert not await Member.all().count()


async def test_rollback_on_storage_error(database):
    """Assert that a database error is wrapped, and undoes the operation."""

    async def create_twice(connection):
        await Machine.create(number="PC-01", hourly_rate=1, using_db=connection)
        await Machine.create(number="PC-01", hourly_rate=1, using_db=connection)

    with pytest.raises(StorageError) as error:
        await run_in_transaction(create_twice)

    assert error.value.kind == "internal"
    assert not await Machine.all().count()


async def test_timeout(database):
    """Assert that an operation that takes too long is aborted and rolled back."""

    async def slow_operation(connection):
        await Member.create(name="Ada", using_db=connection)
        await asyncio.sleep(5)

    with pytest.raises(TransactionTimeoutError) as error:
        await run_in_transaction(slow_operation, timeout=0.05)

    assert error.value.context["timeout"] == 0.05
    assert not await Member.all().count()


async def test_timeout_releases_database(database):
    """Assert that the database can be used normally after a transaction times out."""

    async def slow_operation(connection):
        await asyncio.sleep(5)

    async def create_member(connection):
        return await Member.create(name="Grace", using_db=connection)

    with pytest.raises(TransactionTimeoutError):
        await run_in_transaction(slow_operation, timeout=0.05)

    assert await run_in_transaction(create_member, timeout=1)
