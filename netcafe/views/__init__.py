"""
.. autoclasstree:: netcafe.views

This package contains the server API for managing members,
machines, and the sessions between them.

API Conventions
---------------

The API conforms as best as possible to the REST standard. For a quick primer, look at `Web Api Design`_. In short,
the api must:

* Be ordered in terms of resources (nouns such as machine)
* Accept and return JSON with snake_case key naming
* Support filtering (if necessary) using the query string

API Expected Responses
----------------------

The server responds with JSend formatted JSON to all GET, POST, PATCH requests.
Errors from the service layer are returned as a ``fail`` (for problems with the
request) or an ``error`` (for problems with the server), with a ``reason`` that
identifies exactly what went wrong. Deleting a member or a machine responds with a 204 no content.

.. _`Web Api Design`: https://pages.apigee.com/rs/apigee/images/api-design-ebook-2012-03.pdf
"""

import aiohttp_cors
from aiohttp.abc import Application

from netcafe import logger
from .machines import MachinesView, MachineRatesView, MachineView, MachineSessionView
from .members import MembersView, MemberView, MemberTopUpView, MemberUsageRecordsView
from .sessions import SessionsView, EndSessionView
from .usage_records import UsageRecordsView, UsageRecordView

views = [
    SessionsView, EndSessionView,
    MachinesView, MachineRatesView, MachineView, MachineSessionView,
    MembersView, MemberView, MemberTopUpView, MemberUsageRecordsView,
    UsageRecordsView, UsageRecordView,
]


def register_views(app: Application, base: str):
    """
    Registers all the API views onto the given router at a specific root url.

    :param app: The app to register the views to.
    :param base: The base URL.
    """
    cors = aiohttp_cors.setup(app, defaults={
        "*": aiohttp_cors.ResourceOptions(
            allow_credentials=True,
            expose_headers="*",
            allow_headers="*",
            allow_methods="*",
        )
    })

    for view in views:
        logger.info("Registered %s at %s", view.__name__, base + view.url)
        view.register_route(app, base)
        view.enable_cors(cors)
