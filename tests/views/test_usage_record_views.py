from aiohttp.test_utils import TestClient

from netcafe.models import UsageRecord
from netcafe.serializer import JSendSchema, Many
from netcafe.serializer.models import UsageRecordSchema


async def finished_session(client: TestClient, member, machine, clock):
    record = await client.app["session_manager"].start_session(member.id, machine.id)
    clock.advance(minutes=20)
    await client.app["session_manager"].end_session(machine.id)
    return record


class TestUsageRecordsView:

    async def test_get_usage_records(self, client: TestClient, random_member, random_machine, clock):
        old = await finished_session(client, random_member, random_machine, clock)
        active = await client.app["session_manager"].start_session(random_member.id, random_machine.id)

        response = await client.get('/api/v1/usage-records')
        response_data = JSendSchema.of(usage_records=Many(UsageRecordSchema())).load(await response.json())
        assert [record["id"] for record in response_data["data"]["usage_records"]] == [active.id, old.id]

        response = await client.get('/api/v1/usage-records', params={"active": "false"})
        response_data = JSendSchema.of(usage_records=Many(UsageRecordSchema())).load(await response.json())
        assert [record["id"] for record in response_data["data"]["usage_records"]] == [old.id]

    async def test_get_usage_records_bad_filter(self, client: TestClient):
        response = await client.get('/api/v1/usage-records', params={"machine_id": "abc"})
        assert response.status == 400

    async def test_get_usage_records_oversized_filter(self, client: TestClient):
        response = await client.get('/api/v1/usage-records', params={"member_id": str(2 ** 31)})
        assert response.status == 400
        assert (await response.json())["data"]["reason"] == "invalid_request"

    async def test_delete_usage_records(self, client: TestClient, random_member, random_machine, clock):
        old = await finished_session(client, random_member, random_machine, clock)

        response = await client.delete('/api/v1/usage-records', json={"ids": [old.id]})
        assert response.status == 200
        assert (await response.json())["data"]["deleted"] == 1
        assert not await UsageRecord.all().count()

    async def test_delete_active_usage_record(self, client: TestClient, random_session):
        """Assert that the record of a session still in progress can not be deleted."""
        response = await client.delete('/api/v1/usage-records', json={"ids": [random_session.id]})
        assert response.status == 409
        assert (await response.json())["data"]["reason"] == "session_active"
        assert await UsageRecord.all().count() == 1


class TestUsageRecordView:

    async def test_get_usage_record(self, client: TestClient, random_member, random_machine, clock):
        old = await finished_session(client, random_member, random_machine, clock)

        response = await client.get(f'/api/v1/usage-records/{old.id}')
        response_data = JSendSchema.of(usage_record=UsageRecordSchema()).load(await response.json())
        record = response_data["data"]["usage_record"]
        assert record["id"] == old.id
        assert record["end_time"] == clock.now
        assert str(record["fee"]) == "3.33"

    async def test_get_missing_usage_record(self, client: TestClient):
        response = await client.get('/api/v1/usage-records/1')
        assert response.status == 404
        assert (await response.json())["data"]["reason"] == "record"
