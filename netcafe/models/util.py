from datetime import datetime, timezone
from enum import Enum


class MachineStatus(str, Enum):
    """We subclass string to make json serialization work."""
    FREE = "free"
    IN_USE = "in_use"
    OFFLINE = "offline"

    @staticmethod
    def administrative_types():
        """The statuses an administrator may set by hand."""
        return MachineStatus.FREE, MachineStatus.OFFLINE


def utcnow() -> datetime:
    """The current time, timezone aware."""
    return datetime.now(timezone.utc)
