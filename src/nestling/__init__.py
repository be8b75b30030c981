"""Nestling — a small MVC dispatch core for async Python web apps.

Requests flow through an ordered middleware chain into a regex router;
matched routes invoke controller actions, plain callables, or nested
modules mounted under a URI prefix.

Basic usage::

    from nestling import Application, Controller

    app = Application()

    @app.controller()
    class Pages(Controller):
        def home(self, request):
            return "Hello, World!"

    app.add_route(r"GET:^/$", "Pages::home")

Serve ``app`` with any ASGI 3 server.
"""

__version__ = "0.1.0"
__all__ = [
    "AppConfig",
    "Application",
    "Config",
    "ConfigurationError",
    "Controller",
    "Dispatcher",
    "HTTPError",
    "HandlerResolutionError",
    "MethodNotAllowed",
    "Middleware",
    "Module",
    "NestlingError",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "Router",
    "ServiceContainer",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import nestling`` fast while providing a clean top-level API.
    """
    if name == "Application":
        from nestling.app import Application

        return Application

    if name in ("AppConfig", "Config"):
        from nestling import config as _config

        return getattr(_config, name)

    if name == "Controller":
        from nestling.controller import Controller

        return Controller

    if name == "Dispatcher":
        from nestling.dispatcher import Dispatcher

        return Dispatcher

    if name == "Module":
        from nestling.module import Module

        return Module

    if name == "Router":
        from nestling.routing.router import Router

        return Router

    if name == "ServiceContainer":
        from nestling.services import ServiceContainer

        return ServiceContainer

    if name == "Request":
        from nestling.http.request import Request

        return Request

    if name == "Response":
        from nestling.http.response import Response

        return Response

    if name in ("Middleware", "Next"):
        from nestling.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "get_request":
        from nestling.context import get_request

        return get_request

    if name in (
        "ConfigurationError",
        "HTTPError",
        "HandlerResolutionError",
        "MethodNotAllowed",
        "NestlingError",
        "NotFound",
    ):
        from nestling import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
