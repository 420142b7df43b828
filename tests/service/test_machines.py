from decimal import Decimal

import pytest

from netcafe.errors import MachineNumberTakenError, InvalidRequestError, MachineNotFoundError, \
    SessionMustEndFirstError, MachinePrefixNotFoundError
from netcafe.models import Machine, UsageRecord
from netcafe.models.util import MachineStatus
from netcafe.serializer.requests import MAX_RATE
from netcafe.service import MachineRegistry
from tests.util import assert_consistent


async def test_register_machine(machine_registry: MachineRegistry):
    """Assert that new machines start out free."""
    machine = await machine_registry.register_machine("PC-42", Decimal("12.50"))
    machine = await Machine.get(id=machine.id)
    assert machine.status is MachineStatus.FREE
    assert machine.hourly_rate == Decimal("12.5")
    assert machine.occupant_id is None


async def test_register_machine_taken(machine_registry: MachineRegistry, random_machine):
    with pytest.raises(MachineNumberTakenError):
        await machine_registry.register_machine(random_machine.number, 5)
    assert await Machine.all().count() == 1


@pytest.mark.parametrize("number,rate", [("", 5), ("PC-1", -1), ("PC-1", "cheap"), ("X" * 33, 5), ("PC-1", MAX_RATE + 1)])
async def test_register_machine_invalid(machine_registry: MachineRegistry, number, rate):
    with pytest.raises(InvalidRequestError):
        await machine_registry.register_machine(number, rate)


async def test_get_machines(machine_registry: MachineRegistry, machine_factory):
    first = await machine_factory()
    second = await machine_factory(status=MachineStatus.OFFLINE)

    assert [machine.id for machine in await machine_registry.get_machines()] == [first.id, second.id]
    assert [machine.id for machine in await machine_registry.get_machines(status=MachineStatus.OFFLINE)] == [second.id]


async def test_set_rate(machine_registry: MachineRegistry, random_machine):
    machine = await machine_registry.set_rate(random_machine.id, "7.25")
    assert machine.hourly_rate == Decimal("7.25")
    assert (await Machine.get(id=random_machine.id)).hourly_rate == Decimal("7.25")


async def test_set_rate_during_session(machine_registry: MachineRegistry, random_session, random_machine):
    """Assert that the rate can be changed without touching the session."""
    await machine_registry.set_rate(random_machine.id, 0)
    machine = await Machine.get(id=random_machine.id)
    assert machine.hourly_rate == 0
    assert machine.status is MachineStatus.IN_USE
    await assert_consistent()


async def test_set_rate_invalid(machine_registry: MachineRegistry, random_machine):
    with pytest.raises(MachineNotFoundError):
        await machine_registry.set_rate(random_machine.id + 1, 5)
    with pytest.raises(InvalidRequestError):
        await machine_registry.set_rate(random_machine.id, -5)


async def test_update_status(machine_registry: MachineRegistry, random_machine):
    """Assert that an administrator can take a machine offline and bring it back."""
    machine = await machine_registry.update_status(random_machine.id, MachineStatus.OFFLINE)
    assert machine.status is MachineStatus.OFFLINE

    machine = await machine_registry.update_status(random_machine.id, "free", Decimal("3"))
    assert machine.status is MachineStatus.FREE
    assert (await Machine.get(id=random_machine.id)).hourly_rate == Decimal("3")


async def test_update_status_in_use(machine_registry: MachineRegistry, random_machine):
    """Assert that only a session can put a machine in use."""
    with pytest.raises(InvalidRequestError):
        await machine_registry.update_status(random_machine.id, MachineStatus.IN_USE)
    assert (await Machine.get(id=random_machine.id)).status is MachineStatus.FREE


async def test_update_status_during_session(machine_registry: MachineRegistry, random_session, random_machine):
    """Assert that a machine's status can not be changed while a session is open on it."""
    with pytest.raises(SessionMustEndFirstError) as error:
        await machine_registry.update_status(random_machine.id, MachineStatus.FREE)

    assert error.value.context["status"] == "in_use"
    assert error.value.context["record_id"] == random_session.id
    assert (await Machine.get(id=random_machine.id)).status is MachineStatus.IN_USE
    await assert_consistent()


async def test_update_status_repairs_machine(machine_registry: MachineRegistry, machine_factory, random_member, clock):
    """Assert that a machine left in use without a session can be freed."""
    machine = await machine_factory(status=MachineStatus.IN_USE, occupant=random_member, session_start=clock.now)

    machine = await machine_registry.update_status(machine.id, MachineStatus.FREE)
    assert machine.status is MachineStatus.FREE
    assert machine.occupant_id is None
    await assert_consistent()


async def test_update_status_missing(machine_registry: MachineRegistry, random_machine):
    with pytest.raises(MachineNotFoundError):
        await machine_registry.update_status(random_machine.id + 1, MachineStatus.OFFLINE)


async def test_set_rates_by_id(machine_registry: MachineRegistry, machine_factory):
    first, second, untouched = await machine_factory(), await machine_factory(), await machine_factory()

    machines = await machine_registry.set_rates("4.50", machine_ids=[second.id, first.id])

    assert [machine.id for machine in machines] == [first.id, second.id]
    for machine in (first, second):
        assert (await Machine.get(id=machine.id)).hourly_rate == Decimal("4.5")
    assert (await Machine.get(id=untouched.id)).hourly_rate == Decimal("10")


async def test_set_rates_missing_id(machine_registry: MachineRegistry, machine_factory):
    """Assert that no rate is changed if any of the machines does not exist."""
    machine = await machine_factory()

    with pytest.raises(MachineNotFoundError) as error:
        await machine_registry.set_rates(3, machine_ids=[machine.id, machine.id + 1])

    assert error.value.context["machine_id"] == machine.id + 1
    assert (await Machine.get(id=machine.id)).hourly_rate == Decimal("10")


async def test_set_rates_by_prefix(machine_registry: MachineRegistry, machine_factory):
    vip = await Machine.create(number="VIP-01", hourly_rate=Decimal("20"))
    other_vip = await Machine.create(number="VIP-02", hourly_rate=Decimal("25"))
    regular = await machine_factory()

    machines = await machine_registry.set_rates("30", number_prefix="VIP-")

    assert [machine.id for machine in machines] == [vip.id, other_vip.id]
    assert {machine.hourly_rate for machine in await Machine.filter(number__startswith="VIP-")} == {Decimal("30")}
    assert (await Machine.get(id=regular.id)).hourly_rate == Decimal("10")


async def test_set_rates_unknown_prefix(machine_registry: MachineRegistry, random_machine):
    with pytest.raises(MachinePrefixNotFoundError):
        await machine_registry.set_rates(3, number_prefix="VIP-")


async def test_set_rates_during_session(machine_registry: MachineRegistry, random_session, random_machine):
    """Assert that batch rate changes, like single ones, leave the session alone."""
    await machine_registry.set_rates(2, machine_ids=[random_machine.id])
    assert (await Machine.get(id=random_machine.id)).status is MachineStatus.IN_USE
    await assert_consistent()


@pytest.mark.parametrize("rate,selection", [
    (5, {}),
    (5, {"machine_ids": [1], "number_prefix": "PC"}),
    (5, {"machine_ids": []}),
    (5, {"number_prefix": ""}),
    (-1, {"number_prefix": "PC"}),
    (MAX_RATE + 1, {"number_prefix": "PC"}),
])
async def test_set_rates_invalid(machine_registry: MachineRegistry, random_machine, rate, selection):
    with pytest.raises(InvalidRequestError):
        await machine_registry.set_rates(rate, **selection)
    assert (await Machine.get(id=random_machine.id)).hourly_rate == Decimal("10")


async def test_delete_machine(machine_registry: MachineRegistry, session_manager, random_member, random_machine, clock):
    """Assert that deleting a machine also deletes its finished records."""
    await session_manager.start_session(random_member.id, random_machine.id)
    clock.advance(minutes=10)
    await session_manager.end_session(random_machine.id)

    await machine_registry.delete_machine(random_machine.id)

    assert not await Machine.filter(id=random_machine.id).exists()
    assert not await UsageRecord.all().count()


async def test_delete_machine_during_session(machine_registry: MachineRegistry, random_session, random_machine):
    """Assert that a machine in use can not be deleted."""
    with pytest.raises(SessionMustEndFirstError) as error:
        await machine_registry.delete_machine(random_machine.id)

    assert error.value.context["record_id"] == random_session.id
    assert await Machine.filter(id=random_machine.id).exists()
    assert (await UsageRecord.get(id=random_session.id)).is_active
    await assert_consistent()


async def test_delete_machine_missing(machine_registry: MachineRegistry, random_machine):
    with pytest.raises(MachineNotFoundError):
        await machine_registry.delete_machine(random_machine.id + 1)
    with pytest.raises(InvalidRequestError):
        await machine_registry.delete_machine(2 ** 31)
