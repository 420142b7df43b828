"""
The pricing module determines the fee for a session on a machine. Sessions are billed per
started minute at the machine's hourly rate, with no minimum charge and no cap.

The fee is kept at the storage precision of the ledger (see :data:`FEE_QUANTUM`) so that
the amount checked against a member's balance is exactly the amount deducted. Rounding to
currency units only happens when the fee is presented.
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple, Union

from netcafe.errors import InvalidTimestampError, InvalidRequestError

MINUTES_PER_HOUR = Decimal(60)

FEE_QUANTUM = Decimal("0.000001")
"""The precision fees are stored and deducted at."""


class Bill(NamedTuple):
    """The breakdown of a finished session."""

    duration_minutes: int
    hourly_rate: Decimal
    fee: Decimal


def get_duration_minutes(start_time: datetime, end_time: datetime) -> int:
    """
    Gets the number of billable minutes between two times. Partial minutes always
    count as a full minute, so a session of one second bills as one minute.

    :raises InvalidTimestampError: If the end time is before the start time.
    """
    if end_time < start_time:
        raise InvalidTimestampError(start_time=start_time.isoformat(), end_time=end_time.isoformat())

    minutes, remainder = divmod(end_time - start_time, timedelta(minutes=1))
    if remainder:
        minutes += 1

    return minutes


def get_fee(duration_minutes: int, hourly_rate: Union[Decimal, int, str]) -> Decimal:
    """
    Given a duration and an hourly rate, returns the fee: ``(duration_minutes / 60) * hourly_rate``.

    :return: The fee, at ledger precision.
    """
    if duration_minutes < 0:
        raise InvalidTimestampError("A duration can not be negative.", duration_minutes=duration_minutes)

    hourly_rate = Decimal(hourly_rate)
    if hourly_rate < 0:
        raise InvalidRequestError({"hourly_rate": ["Must be greater than or equal to 0."]})

    fee = Decimal(duration_minutes) * hourly_rate / MINUTES_PER_HOUR
    return fee.quantize(FEE_QUANTUM, rounding=ROUND_HALF_UP)


def get_bill(start_time: datetime, end_time: datetime, hourly_rate: Union[Decimal, int, str]) -> Bill:
    """Bills a session that ran from ``start_time`` until ``end_time`` at the given rate."""
    duration_minutes = get_duration_minutes(start_time, end_time)
    return Bill(duration_minutes, Decimal(hourly_rate), get_fee(duration_minutes, hourly_rate))


def get_price_estimate(start_time: datetime, now: datetime, hourly_rate: Union[Decimal, int, str]) -> Decimal:
    """Gets the price of an open session so far, as if it ended ``now``."""
    return get_bill(start_time, max(start_time, now), hourly_rate).fee
