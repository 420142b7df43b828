"""
Errors
------

The errors raised by the service layer. Every error carries a stable
``kind`` (which family it belongs to) and ``reason`` (what exactly went
wrong) so that the request layer can translate it without inspecting
the message.

.. autoclasstree:: netcafe.errors
"""

from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional


class ErrorKind(str, Enum):
    """Enumerates the families of service errors."""

    NOT_FOUND = "not_found"
    """The requested member, machine or record does not exist."""

    CONFLICT = "conflict"
    """The request is valid but clashes with the current state of the system."""

    VALIDATION = "validation"
    """The request is missing data or the data is malformed."""

    INTERNAL = "internal"
    """Something is wrong with the system itself."""


class ServiceError(Exception):
    """The base class for all errors raised by the service layer."""

    kind: ErrorKind
    reason: str

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def serialize(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "reason": self.reason,
            "message": self.message,
            "context": {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.context.items()
            }
        }


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class InvalidRequestError(ServiceError):
    """Raised when the input to an operation does not validate."""

    kind = ErrorKind.VALIDATION
    reason = "invalid_request"

    def __init__(self, errors: Dict[str, Any]):
        super().__init__("The request did not validate properly.", errors=errors)
        self.errors = errors


class InternalError(ServiceError):
    """
    Raised when the system is in (or would be put into) a state it should never be in.
    These indicate a bug rather than a normal business condition.
    """

    kind = ErrorKind.INTERNAL


class MemberNotFoundError(NotFoundError):
    reason = "member"

    def __init__(self, member_id: int):
        super().__init__(f"Member {member_id} does not exist.", member_id=member_id)


class MachineNotFoundError(NotFoundError):
    reason = "machine"

    def __init__(self, machine_id: int):
        super().__init__(f"Machine {machine_id} does not exist.", machine_id=machine_id)


class MachinePrefixNotFoundError(NotFoundError):
    reason = "machine"

    def __init__(self, number_prefix: str):
        super().__init__(f"No machine has a number starting with {number_prefix}.", number_prefix=number_prefix)


class RecordNotFoundError(NotFoundError):
    reason = "record"

    def __init__(self, *record_ids: int):
        super().__init__(
            f"Usage record(s) {', '.join(str(x) for x in record_ids)} do not exist.",
            record_ids=list(record_ids)
        )


class MemberAlreadyActiveError(ConflictError):
    """Raised when a member tries to start a session while they already have one open."""

    reason = "member_already_active"

    def __init__(self, member_id: int, record_id: int):
        super().__init__(
            "The member already has an active session and may not use more than one machine at once.",
            member_id=member_id, record_id=record_id
        )


class MachineBusyError(ConflictError):
    reason = "machine_busy"

    def __init__(self, machine_id: int, status):
        super().__init__(
            f"The machine is not available (current status: {status.value}).",
            machine_id=machine_id, status=status.value
        )


class NoActiveSessionError(ConflictError):
    reason = "no_active_session"

    def __init__(self, machine_id: int):
        super().__init__("There is no active session on that machine.", machine_id=machine_id)


class SessionMustEndFirstError(ConflictError):
    reason = "session_must_end_first"

    def __init__(self, machine_id: int, status, record_id: int):
        super().__init__(
            "The machine is in use. End the session before changing its status or deleting it.",
            machine_id=machine_id, status=status.value, record_id=record_id
        )


class InsufficientBalanceError(ConflictError):
    reason = "insufficient_balance"

    def __init__(self, member_id: int, balance: Decimal, required: Decimal):
        super().__init__(
            "The member does not have enough balance, please top up first.",
            member_id=member_id, balance=balance, required=required
        )


class SessionActiveError(ConflictError):
    """Raised when trying to delete data that belongs to a session still in progress."""

    reason = "session_active"

    def __init__(self, *record_ids: int):
        super().__init__(
            "Usage records of sessions still in progress cannot be deleted.",
            record_ids=list(record_ids)
        )


class MachineNumberTakenError(ConflictError):
    reason = "machine_number_taken"

    def __init__(self, number: str):
        super().__init__(f"A machine with number {number} already exists.", number=number)


class InvariantViolationError(InternalError):
    reason = "invariant_violation"


class InvalidTimestampError(InternalError):
    reason = "invalid_timestamp"

    def __init__(self, message="The session ends before it starts, check the server clock.", **context):
        super().__init__(message, **context)


class TransactionTimeoutError(InternalError):
    reason = "transaction_timeout"

    def __init__(self, timeout: Optional[float]):
        super().__init__(f"The transaction did not complete within {timeout} seconds.", timeout=timeout)


class StorageError(InternalError):
    reason = "storage"
