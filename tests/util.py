from datetime import datetime, timedelta, timezone

from netcafe.models import Machine, Member, UsageRecord
from netcafe.models.util import MachineStatus


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = None):
        self.now = now if now is not None else datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


async def assert_consistent():
    """Assert that the machines, members and records in the database agree with each other."""
    for machine in await Machine.all():
        active = await UsageRecord.filter(machine_id=machine.id, end_time__isnull=True)
        assert len(active) <= 1
        assert (machine.status is MachineStatus.IN_USE) == (len(active) == 1)
        if active:
            assert machine.occupant_id == active[0].member_id
            assert machine.session_start == active[0].start_time
        else:
            assert machine.occupant_id is None
            assert machine.session_start is None

    for member in await Member.all():
        assert member.balance >= 0
        assert await UsageRecord.filter(member_id=member.id, end_time__isnull=True).count() <= 1

    for record in await UsageRecord.all():
        assert (record.fee is None) == (record.end_time is None)
