"""
Usage Record Related Views
---------------------------

Handles looking up and cleaning up the usage records.

Records are only ever created and finished through the sessions.
"""
from aiohttp_apispec import docs
from marshmallow.fields import Integer

from netcafe.models import UsageRecord
from netcafe.serializer import JSendSchema, JSendStatus, Many
from netcafe.serializer.decorators import expects, returns
from netcafe.serializer.models import UsageRecordSchema
from netcafe.serializer.requests import RecordFilterSchema, RecordIdsSchema, load_request
from netcafe.service import UsageRecordStore
from netcafe.views.base import BaseView
from netcafe.views.decorators import match_getter


class UsageRecordsView(BaseView):
    """
    Gets or deletes usage records.
    """
    url = "/usage-records"
    name = "usage_records"

    @docs(summary="Get All Usage Records")
    @expects(None)
    @returns(JSendSchema.of(usage_records=Many(UsageRecordSchema())))
    async def get(self):
        """
        Gets the usage records, newest first. They can be filtered
        with ``?member_id=``, ``?machine_id=`` and ``?active=``.
        """
        query = load_request(RecordFilterSchema(), **dict(self.request.query))
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"usage_records": [
                record.serialize() for record in await self.usage_records.get_records(**query)
            ]}
        }

    @docs(summary="Delete Usage Records")
    @expects(RecordIdsSchema())
    @returns(JSendSchema.of(deleted=Integer()))
    async def delete(self):
        """Deletes a batch of finished records. If any of them is still active, none are deleted."""
        deleted = await self.usage_records.delete_records(self.request["data"]["ids"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"deleted": deleted}
        }


class UsageRecordView(BaseView):
    """
    Gets a single usage record.
    """
    url = "/usage-records/{id}"
    name = "usage_record"
    with_record = match_getter(UsageRecordStore.get_record, 'record', record_id='id')

    @with_record
    @docs(summary="Get A Usage Record")
    @returns(JSendSchema.of(usage_record=UsageRecordSchema()))
    async def get(self, record: UsageRecord):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"usage_record": record.serialize()}
        }
