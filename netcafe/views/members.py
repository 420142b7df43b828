"""
Member Related Views
-------------------------

Handles all the member CRUD, topping up balances, and a member's usage history.
"""
from http import HTTPStatus

from aiohttp import web
from aiohttp_apispec import docs

from netcafe.models import Member
from netcafe.serializer import JSendSchema, JSendStatus, Many
from netcafe.serializer.decorators import expects, returns
from netcafe.serializer.models import MemberSchema, UsageRecordSchema, TopUpResultSchema
from netcafe.serializer.requests import MemberCreateSchema, TopUpSchema
from netcafe.service import MemberLedger
from netcafe.views.base import BaseView
from netcafe.views.decorators import match_getter


class MembersView(BaseView):
    """
    Gets or adds to the list of members.
    """
    url = "/members"
    name = "members"

    @docs(summary="Get All Members")
    @expects(None)
    @returns(JSendSchema.of(members=Many(MemberSchema())))
    async def get(self):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"members": [member.serialize() for member in await self.member_ledger.get_members()]}
        }

    @docs(summary="Create A Member")
    @expects(MemberCreateSchema())
    @returns(JSendSchema.of(member=MemberSchema()), HTTPStatus.CREATED)
    async def post(self):
        member = await self.member_ledger.create_member(**self.request["data"])
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"member": member.serialize()}
        }


class MemberView(BaseView):
    """
    Gets or deletes a single member.
    """
    url = "/members/{id}"
    name = "member"
    with_member = match_getter(MemberLedger.get_member, 'member', member_id='id')

    @with_member
    @docs(summary="Get A Member")
    @expects(None)
    @returns(JSendSchema.of(member=MemberSchema()))
    async def get(self, member: Member):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"member": member.serialize()}
        }

    @with_member
    @docs(summary="Delete A Member")
    async def delete(self, member: Member):
        """Deletes a member and their usage history. Members in a session can not be deleted."""
        await self.member_ledger.delete_member(member.id)
        raise web.HTTPNoContent


class MemberTopUpView(BaseView):
    """
    Adds funds to a member's balance.
    """
    url = "/members/{id}/top-up"
    name = "member_top_up"
    with_member = match_getter(MemberLedger.get_member, 'member', member_id='id')

    @with_member
    @docs(summary="Top Up A Member")
    @expects(TopUpSchema(only=("amount",)))
    @returns(JSendSchema.of(top_up=TopUpResultSchema()))
    async def post(self, member: Member):
        amount = self.request["data"]["amount"]
        member, previous_balance = await self.member_ledger.top_up(member.id, amount)
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"top_up": {
                "member": member.serialize(),
                "amount": amount,
                "previous_balance": previous_balance
            }}
        }


class MemberUsageRecordsView(BaseView):
    """
    Gets the usage history of a member.
    """
    url = "/members/{id}/usage-records"
    name = "member_usage_records"
    with_member = match_getter(MemberLedger.get_member, 'member', member_id='id')

    @with_member
    @docs(summary="Get All Usage Records For Member")
    @returns(JSendSchema.of(usage_records=Many(UsageRecordSchema())))
    async def get(self, member: Member):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"usage_records": [
                record.serialize() for record in await self.usage_records.get_records(member_id=member.id)
            ]}
        }
