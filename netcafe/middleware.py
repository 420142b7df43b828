"""
Middleware
----------
"""
from http import HTTPStatus

from aiohttp import web
from aiohttp.abc import Request
from aiohttp.web_middlewares import middleware

from netcafe import logger
from netcafe.errors import ServiceError, ErrorKind
from netcafe.serializer import JSendStatus, JSendSchema

response_schema = JSendSchema()

error_status = {
    ErrorKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorKind.CONFLICT: HTTPStatus.CONFLICT,
    ErrorKind.VALIDATION: HTTPStatus.BAD_REQUEST,
    ErrorKind.INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
}
"""Maps each family of service error to the HTTP status it is returned with."""


@middleware
async def service_error_middleware(request: Request, handler):
    """
    Converts any :class:`~netcafe.errors.ServiceError` that escapes a view into a JSend response.

    Errors made by the client (missing items, conflicts and invalid data) are
    returned as a failure, and errors in the system itself as an error.
    """
    try:
        return await handler(request)
    except ServiceError as error:
        status = error_status[error.kind]

        if error.kind is ErrorKind.INTERNAL:
            logger.error("%s %s failed: %s", request.method, request.rel_url, error.message)
            response = {
                "status": JSendStatus.ERROR,
                "message": error.message,
                "data": {"reason": error.reason},
            }
        else:
            response = {
                "status": JSendStatus.FAIL,
                "data": error.serialize(),
            }

        return web.json_response(response_schema.dump(response), status=status)
