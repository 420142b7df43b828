"""
Signals
-------

Defines a number of signals that the aiohttp server uses
to set up and tear down the resources the app depends on.

Each signal must accept an the ``app`` argument.
"""

import asyncio

from aiohttp.abc import Application
from tortoise import Tortoise
from tortoise.exceptions import OperationalError

from netcafe import logger


async def close_database_connections(app: Application):
    """Closes the open database connections."""
    await Tortoise.close_connections()


async def initialize_database(app: Application):
    """Initializes and generates the schema for our database."""
    logger.info("Connecting to %s", app['database_uri'].split("://")[0])
    await Tortoise.init(
        db_url=app['database_uri'],
        modules={'models': ['netcafe.models']},
        use_tz=True,
        timezone="UTC"
    )
    try:
        await Tortoise.generate_schemas(safe=True)
    except OperationalError:
        pass


async def enable_debug(app: Application):
    """Puts the event loop in debug mode."""
    asyncio.get_running_loop().set_debug(True)


def register_signals(app, init_database=True):
    """Registers all the signals at the appropriate hooks."""
    if init_database:
        app.on_startup.append(initialize_database)
        app.on_cleanup.append(close_database_connections)
