"""
Session Related Views
---------------------------

Handles members checking in to and out of machines.
Starting a session takes the member and the machine,
ending it only needs the machine.
"""
from http import HTTPStatus

from aiohttp_apispec import docs

from netcafe.serializer import JSendSchema, JSendStatus, Many
from netcafe.serializer.decorators import expects, returns
from netcafe.serializer.models import UsageRecordSchema
from netcafe.serializer.requests import StartSessionSchema, EndSessionSchema
from netcafe.views.base import BaseView


class SessionsView(BaseView):
    """
    Gets the open sessions, or starts a new one.
    """
    url = "/sessions"
    name = "sessions"

    @docs(summary="Get All Active Sessions")
    @expects(None)
    @returns(JSendSchema.of(sessions=Many(UsageRecordSchema())))
    async def get(self):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"sessions": [record.serialize() for record in await self.session_manager.active_sessions()]}
        }

    @docs(summary="Start A Session")
    @expects(StartSessionSchema())
    @returns(JSendSchema.of(session=UsageRecordSchema(only=(
        "id", "member_id", "machine_id", "start_time", "is_active"
    ))), HTTPStatus.CREATED)
    async def post(self):
        record = await self.session_manager.start_session(**self.request["data"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"session": record.serialize()}
        }


class EndSessionView(BaseView):
    """
    Ends the session on a machine and bills the member.
    """
    url = "/sessions/end"
    name = "end_session"

    @docs(summary="End A Session")
    @expects(EndSessionSchema())
    @returns(JSendSchema.of(session=UsageRecordSchema(only=(
        "id", "member_id", "machine_id", "start_time", "end_time", "is_active",
        "duration_minutes", "hourly_rate", "fee"
    ))))
    async def post(self):
        """
        Ends the session, charging the member for every started minute at the
        machine's current hourly rate. If the member can not afford it, nothing
        changes and the session stays open.
        """
        record, bill = await self.session_manager.end_session(**self.request["data"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"session": record.serialize(bill=bill)}
        }
