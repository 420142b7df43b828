"""
.. autoclasstree:: netcafe.service

The service layer for the system. Acts as the internal API.
Each interface (the REST API, the command line) should use the
service layer to implement their logic.

The service layer implements the use cases for the system, such
that they may be reused by any program that needs to access it.
It is designed to represent the business logic.
"""

from .access import MachineRegistry, MemberLedger, UsageRecordStore
from .manager import SessionManager
from .transactions import run_in_transaction
