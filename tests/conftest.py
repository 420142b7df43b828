from decimal import Decimal
from itertools import count

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient
from faker import Faker
from faker.providers import person, phone_number
from tortoise import Tortoise

from netcafe.app import register_services
from netcafe.middleware import service_error_middleware
from netcafe.models import Member, Machine, UsageRecord
from netcafe.service import SessionManager, MemberLedger, MachineRegistry, UsageRecordStore
from netcafe.signals import register_signals
from netcafe.views import register_views
from tests.util import FakeClock

pytest_plugins = 'aiohttp.pytest_plugin'

fake = Faker()
fake.add_provider(person)
fake.add_provider(phone_number)


@pytest.fixture
async def database(loop):
    """Gives each test a fresh, empty, in memory database."""
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={'models': ['netcafe.models']},
        use_tz=True,
        timezone="UTC"
    )
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def usage_records(database):
    return UsageRecordStore(timeout=5)


@pytest.fixture
def member_ledger(usage_records):
    return MemberLedger(usage_records, timeout=5)


@pytest.fixture
def machine_registry(usage_records):
    return MachineRegistry(usage_records, timeout=5)


@pytest.fixture
def session_manager(member_ledger, machine_registry, usage_records, clock):
    return SessionManager(member_ledger, machine_registry, usage_records, clock=clock, timeout=5)


@pytest.fixture
def member_factory(database):
    async def create_member(balance="100"):
        return await Member.create(name=fake.name(), phone=fake.phone_number()[:32], balance=Decimal(balance))

    return create_member


@pytest.fixture
def machine_factory(database):
    machine_number = count(1)

    async def create_machine(hourly_rate="10", **kwargs):
        return await Machine.create(number=f"PC-{next(machine_number):02}", hourly_rate=Decimal(hourly_rate), **kwargs)

    return create_machine


@pytest.fixture
async def random_member(member_factory) -> Member:
    """Creates a random member with a balance of 100 in the database."""
    return await member_factory()


@pytest.fixture
async def random_machine(machine_factory) -> Machine:
    """Creates a free machine with a rate of 10 per hour in the database."""
    return await machine_factory()


@pytest.fixture
async def random_session(session_manager, random_member, random_machine) -> UsageRecord:
    """Starts a session for the random member on the random machine."""
    return await session_manager.start_session(random_member.id, random_machine.id)


@pytest.fixture
async def client(aiohttp_client, database, clock) -> TestClient:
    app = web.Application(middlewares=[service_error_middleware])

    register_services(app, clock=clock, timeout=5)
    register_signals(app, init_database=False)  # we get the database from a fixture
    register_views(app, "/api/v1")

    return await aiohttp_client(app)
