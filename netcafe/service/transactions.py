"""
Transactions
------------

Every operation that touches more than one row runs as a single scoped
transaction. The operation is a coroutine function that takes the
transaction's connection and performs its checks and writes through it.

- If the operation returns normally, the transaction is committed.
- If it raises (a business error, a storage error, or a cancellation),
  the transaction is rolled back before the error reaches the caller.
- If it takes longer than the timeout, it is cancelled, rolled back,
  and a :class:`~netcafe.errors.TransactionTimeoutError` is raised.

Nothing is retried.
"""

import asyncio
from typing import Callable, Awaitable, TypeVar, Optional

from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from netcafe import logger
from netcafe.config import transaction_timeout
from netcafe.errors import ServiceError, StorageError, TransactionTimeoutError

T = TypeVar("T")

Operation = Callable[[BaseDBAsyncClient], Awaitable[T]]


async def run_in_transaction(operation: Operation, *, timeout: Optional[float] = None) -> T:
    """
    Runs the operation inside a transaction.

    :param operation: The coroutine function to run, which is passed the connection.
    :param timeout: How long to wait before aborting. Defaults to the configured timeout.
    :raises TransactionTimeoutError: If the operation does not complete in time.
    :raises StorageError: If the database fails.
    """
    timeout = transaction_timeout if timeout is None else timeout

    try:
        return await asyncio.wait_for(_run(operation), timeout)
    except asyncio.TimeoutError as error:
        logger.error("Transaction %s timed out after %ss", getattr(operation, "__name__", operation), timeout)
        raise TransactionTimeoutError(timeout) from error


async def _run(operation: Operation) -> T:
    try:
        async with in_transaction() as connection:
            return await operation(connection)
    except ServiceError:
        raise
    except BaseORMException as error:
        logger.exception("Transaction %s failed in the database", getattr(operation, "__name__", operation))
        raise StorageError(str(error)) from error
