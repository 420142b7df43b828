"""
Decorators
-------------------------
"""
from functools import wraps
from inspect import isawaitable
from typing import Dict, List

from aiohttp import web
from aiohttp.web_request import Request
from aiohttp.web_urldispatcher import View

from netcafe.serializer import JSendStatus, JSendSchema
from netcafe.serializer.requests import MAX_ID


def resolve_match_map(request: Request, match_map: Dict[str, str]) -> Dict[str, int]:
    """
    Reads the ids out of the url.

    :raises ValueError: With one message per url variable that is missing or not a valid id.
    """
    resolved_matches = {}
    errors: List[str] = []

    for key, url_variable in match_map.items():
        param = request.match_info.get(url_variable)
        if param is None:
            errors.append(f'Missing url parameter "{url_variable}".')
            continue

        try:
            value = int(param)
        except ValueError:
            errors.append(f'Could not convert url parameter "{param}" to an id.')
            continue

        if not 1 <= value <= MAX_ID:
            errors.append(f'Url parameter "{param}" is not a valid id.')
        else:
            resolved_matches[key] = value

    if errors:
        raise ValueError(*errors)
    return resolved_matches


def match_getter(getter_function, injection_parameter: str, **match_map: str):
    """
    Automatically fetches and includes an item, or 404's if it doesn't exist.

    .. code-block:: python

        # example usage
        @match_getter(MachineRegistry.get_machine, 'machine', machine_id='id')
        async def get(self, machine: Machine)
            return web.json_response(data=machine.serialize())

    :param getter_function: The function to fetch the item from.
    :param injection_parameter: The name of the parameter to pass the object as.
    :param match_map: Associates a kwarg on the ``getter_function`` to a url variable holding an id.
    :return: A decorator that wraps the response and passes in the object.
    """

    def attach_instance(original_function):

        @wraps(original_function)
        async def new_func(self: View, **kwargs):
            try:
                params = resolve_match_map(self.request, match_map)
            except ValueError as error:
                response = {
                    "status": JSendStatus.FAIL,
                    "data": {
                        "message": "Errors with your request.",
                        "errors": list(error.args)
                    }
                }
                raise web.HTTPBadRequest(text=JSendSchema().dumps(response), content_type='application/json')

            item = getter_function(**params)
            if isawaitable(item):
                item = await item

            if item is None:
                response = {
                    "status": JSendStatus.FAIL,
                    "data": {
                        "message": f'Could not find {injection_parameter} with the given params.',
                        "reason": injection_parameter,
                        "params": params
                    }
                }
                raise web.HTTPNotFound(text=JSendSchema().dumps(response), content_type='application/json')

            return await original_function(self, **kwargs, **{injection_parameter: item})

        setup_apispec(new_func, original_function)

        return new_func

    return attach_instance


def setup_apispec(new_func, original_function):
    """Copies the apispec documentation onto the new function, adding the responses of :func:`match_getter`."""
    new_func.__apispec__ = getattr(original_function, "__apispec__", {"schemas": [], "responses": {}, "parameters": []})
    new_func.__schemas__ = getattr(original_function, "__schemas__", [])

    new_func.__apispec__["responses"]["404"] = {"description": "resource_missing"}
    new_func.__apispec__["responses"].setdefault("400", {"description": "request_errors"})
