"""
The access layer reads and writes the models. The stores here
accept the connection of the transaction they should run in, so
that a manager can compose them into one atomic operation.
"""

from .machines import MachineRegistry
from .members import MemberLedger
from .usage_records import UsageRecordStore
