"""
App
-----
"""

import sentry_sdk
import uvloop
from aiohttp import web
from aiohttp_apispec import setup_aiohttp_apispec
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from netcafe import server_mode, logger
from netcafe.config import api_root, database_url, sentry_dsn, transaction_timeout
from netcafe.middleware import service_error_middleware
from netcafe.service import SessionManager, MemberLedger, MachineRegistry, UsageRecordStore
from netcafe.signals import register_signals, enable_debug
from netcafe.version import __version__, name
from netcafe.views import register_views


def register_services(app: web.Application, *, clock=None, timeout=transaction_timeout):
    """Creates the service layer and stores it on the app for the views to use."""
    app['usage_records'] = UsageRecordStore(timeout=timeout)
    app['member_ledger'] = MemberLedger(app['usage_records'], timeout=timeout)
    app['machine_registry'] = MachineRegistry(app['usage_records'], timeout=timeout)

    session_kwargs = {"timeout": timeout}
    if clock is not None:
        session_kwargs["clock"] = clock

    app['session_manager'] = SessionManager(
        app['member_ledger'], app['machine_registry'], app['usage_records'], **session_kwargs
    )


def build_app(db_uri=None):
    """Sets up the app and installs uvloop."""
    app = web.Application(middlewares=[service_error_middleware])
    uvloop.install()

    register_services(app)
    app['database_uri'] = db_uri if db_uri is not None else database_url

    # set up the database connection
    register_signals(app)
    if server_mode == "development" or server_mode == "testing":
        app.on_startup.append(enable_debug)

    # register views
    register_views(app, api_root)

    setup_aiohttp_apispec(
        app=app, title=name, version=__version__, url=f"{api_root}/docs",
        info={"description": "Manages member sessions and billing on the terminals of the net cafe."},
    )

    # set up sentry exception tracking
    if server_mode != "development" and sentry_dsn is not None:
        logger.info("Starting Sentry Logging")
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=server_mode,
            release=f"netcafe@{__version__}",
            integrations=[AioHttpIntegration()]
        )

    return app
