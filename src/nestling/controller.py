"""Controllers and the optional hook capabilities.

A controller is any object whose methods are route actions. Two
optional capabilities let it intercept its own actions:

- ``HasBeforeHook`` — ``before_action(request)`` runs first. A truthy
  return value is used as the response and the action is skipped.
- ``HasAfterHook`` — ``after_action(request, result)`` receives the
  action's result and returns the final one.

The resolver checks these protocols once when it builds the handler.
Subclassing ``Controller`` gets both as no-ops plus response helpers.
"""

from __future__ import annotations

import json as json_module
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from nestling.http.request import Request
from nestling.http.response import Response

if TYPE_CHECKING:
    from nestling.services import ServiceContainer


@runtime_checkable
class HasBeforeHook(Protocol):
    def before_action(self, request: Request) -> Any: ...


@runtime_checkable
class HasAfterHook(Protocol):
    def after_action(self, request: Request, result: Any) -> Any: ...


class Controller:
    """Base controller.

    Instantiated per request by the dispatcher with the service
    container::

        class Users(Controller):
            async def before_action(self, request):
                if not request.auth_user:
                    return Response("Login required", status=401)

            def show(self, request, user_id):
                return self.respond_json({"id": int(user_id)})
    """

    def __init__(self, services: ServiceContainer | None = None, **options: Any) -> None:
        self.services = services
        self.options = options

    async def before_action(self, request: Request) -> Any:
        return None

    async def after_action(self, request: Request, result: Any) -> Any:
        return result

    # -- Response helpers --

    def respond(self, body: str | bytes = "") -> Response:
        """A fresh response from the container's ``response`` factory."""
        if self.services is not None and "response" in self.services:
            response: Response = self.services["response"]
        else:
            response = Response()
        return response.set_body(body)

    def respond_json(self, data: Any) -> Response:
        return self.respond(json_module.dumps(data, default=str)).set_header(
            "Content-Type", "application/json"
        )

    def redirect(self, url: str, permanent: bool = False, prefix: bool | None = None) -> Response:
        return self.respond().redirect(url, permanent, prefix)
