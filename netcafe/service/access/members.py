"""
Members
-------

The member ledger. This is the only place a member's balance is changed,
and it guarantees that the balance never goes negative.
"""

from decimal import Decimal
from typing import Optional, Union, Tuple, List

from tortoise.backends.base.client import BaseDBAsyncClient

from netcafe import logger
from netcafe.errors import MemberNotFoundError, InsufficientBalanceError, SessionActiveError, InvalidRequestError
from netcafe.models import Member, UsageRecord
from netcafe.serializer.requests import load_request, TopUpSchema, MemberIdSchema, MemberCreateSchema, MAX_AMOUNT
from netcafe.service.access.usage_records import UsageRecordStore
from netcafe.service.transactions import run_in_transaction


class MemberLedger:
    """
    Reads and adjusts member balances.

    :param records: The usage record store, used to check for open sessions on cleanup.
    """

    def __init__(self, records=None, *, timeout: Optional[float] = None):
        self.records = records if records is not None else UsageRecordStore()
        self._timeout = timeout

    @staticmethod
    async def get_member(member_id: int, *, using_db: BaseDBAsyncClient = None, lock=False) -> Optional[Member]:
        """
        Gets a member.

        :param lock: Whether to lock the member's row until the end of the transaction.
        :return: The member, or None if it doesn't exist.
        """
        query = Member.filter(id=member_id)
        if lock:
            query = query.select_for_update()
        return await query.using_db(using_db).first()

    @staticmethod
    async def get_members() -> List[Member]:
        return await Member.all().order_by("name", "id")

    async def create_member(self, name: str, phone: str = None) -> Member:
        """Registers a new member with an empty balance."""
        request = load_request(MemberCreateSchema(), name=name, phone=phone)
        member = await Member.create(**request, balance=Decimal(0))
        logger.info("Created member %s", member)
        return member

    async def adjust_balance(
        self, member: Union[Member, int], delta: Decimal, *, using_db: BaseDBAsyncClient = None
    ) -> Member:
        """
        Adds ``delta`` (which may be negative) to the member's balance.

        The member should already be locked by the caller when a :class:`Member` is passed in.

        :raises MemberNotFoundError: If no member exists with the given id.
        :raises InsufficientBalanceError: If the balance would go negative.
        :raises InvalidRequestError: If the balance would grow past what can be stored.
        """
        if not isinstance(member, Member):
            member_id = member
            member = await self.get_member(member_id, using_db=using_db, lock=True)
            if member is None:
                raise MemberNotFoundError(member_id)

        delta = Decimal(delta)
        new_balance = member.balance + delta
        if new_balance < 0:
            raise InsufficientBalanceError(member.id, member.balance, -delta)
        if new_balance > MAX_AMOUNT:
            raise InvalidRequestError({"amount": [f"The balance of a member may not exceed {MAX_AMOUNT}."]})

        member.balance = new_balance
        await member.save(using_db=using_db, update_fields=["balance"])
        return member

    async def top_up(self, member_id: int, amount) -> Tuple[Member, Decimal]:
        """
        Adds funds to a member's balance.

        :return: The member and their balance before the top up.
        :raises InvalidRequestError: If the amount is not positive.
        :raises MemberNotFoundError: If the member does not exist.
        """
        request = load_request(TopUpSchema(), member_id=member_id, amount=amount)
        member_id, amount = request["member_id"], request["amount"]

        async def top_up(connection):
            member = await self.get_member(member_id, using_db=connection, lock=True)
            if member is None:
                raise MemberNotFoundError(member_id)
            previous_balance = member.balance
            return await self.adjust_balance(member, amount, using_db=connection), previous_balance

        member, previous_balance = await run_in_transaction(top_up, timeout=self._timeout)
        logger.info("Member %s topped up %s (balance %s -> %s)", member, amount, previous_balance, member.balance)
        return member, previous_balance

    async def delete_member(self, member_id: int):
        """
        Deletes a member along with their (finished) usage records.

        :raises SessionActiveError: If the member is currently using a machine.
        :raises MemberNotFoundError: If the member does not exist.
        """
        member_id = load_request(MemberIdSchema(), member_id=member_id)["member_id"]

        async def delete_member(connection):
            member = await self.get_member(member_id, using_db=connection, lock=True)
            if member is None:
                raise MemberNotFoundError(member_id)

            active = await self.records.find_active_by_member(member_id, using_db=connection)
            if active is not None:
                raise SessionActiveError(active.id)

            await UsageRecord.filter(member_id=member_id).using_db(connection).delete()
            await member.delete(using_db=connection)

        await run_in_transaction(delete_member, timeout=self._timeout)
        logger.info("Deleted member %s", member_id)
