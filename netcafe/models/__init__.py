"""
The models package contains all the models used on the server.

.. autoclasstree:: netcafe.models
"""

from .machine import Machine
from .member import Member
from .usage_record import UsageRecord
