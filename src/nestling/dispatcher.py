"""Dispatcher — middleware chain plus route dispatch.

A ``Dispatcher`` owns a router and an ordered list of middleware. For
each request it runs the middleware in registration order, then
matches the request against its routes and invokes the handler.

Dispatchers nest. A dispatcher is itself a valid handler and a valid
middleware, so a ``Module`` mounted under ``/admin`` sees URIs relative
to ``/admin`` while the request keeps its full path.

Lifecycle:
    1. Setup: ``add_middleware()``, ``add_route()``, ``mount()``, or
       override ``setup()``.
    2. First request: ``ensure_initialised()`` runs ``setup()``, freezes
       the router and middleware, validates string handler specs and
       initialises mounted dispatchers.
    3. Runtime: stateless per-request dispatch. All per-request state
       (chain position, prefix stack, route metadata) lives on the
       request or in local closures, never on the dispatcher.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable, Mapping
from typing import Any

from nestling._internal.invoke import invoke
from nestling._internal.types import HandlerSpec
from nestling.http.request import Request
from nestling.middleware.protocol import Middleware, Next
from nestling.routing.resolver import HandlerResolver
from nestling.routing.route import Route
from nestling.routing.router import Router
from nestling.services import ServiceContainer

logger = logging.getLogger("nestling.dispatch")


def build_chain(middleware: tuple[Middleware, ...], endpoint: Next) -> Next:
    """Wrap *endpoint* in *middleware*, first registered outermost.

    Called once per request. Each link closes over its own successor,
    so concurrent requests never share a position in the chain.
    """
    handler = endpoint
    for mw in reversed(middleware):

        async def link(req: Request, _mw: Any = mw, _next: Next = handler) -> Any:
            return await invoke(_mw, req, _next)

        handler = link
    return handler


class Dispatcher:
    """Routes requests through middleware to handlers.

    Usage::

        dispatcher = Dispatcher(services)
        dispatcher.add_middleware(timing)
        dispatcher.add_route(r"GET:^/$", "Pages::home")
        dispatcher.mount("/admin", AdminModule(services))

        result = await dispatcher(request)
    """

    #: Package searched for ``<namespace>.controllers.<Name>`` handlers.
    #: Defaults to the package of the subclass's module.
    namespace: str | None = None

    def __init__(
        self,
        services: ServiceContainer | None = None,
        *,
        namespace: str | None = None,
        offload_sync_handlers: bool | None = None,
    ) -> None:
        self.services = services
        self.router = Router()
        package = getattr(sys.modules.get(type(self).__module__), "__package__", None)
        self.resolver = HandlerResolver(namespace or self.namespace or package or None)
        self._offload = offload_sync_handlers
        self._middleware_list: list[Middleware] = []
        self._middleware: tuple[Middleware, ...] = ()
        self._initialised = False
        self._init_lock = threading.Lock()

    # -- Setup API --

    def setup(self) -> None:
        """Register routes and middleware. Runs once, before the first request."""

    def add_middleware(self, middleware: Middleware) -> None:
        """Append a middleware. Runs after every previously added one."""
        self._check_not_initialised()
        self._middleware_list.append(middleware)

    def add_route(
        self,
        pattern: str,
        handler: HandlerSpec,
        extra: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> Route:
        """Register *handler* for URIs matching *pattern*. See ``Router.add_route``."""
        self._check_not_initialised()
        return self.router.add_route(pattern, handler, extra, name=name)

    def route(
        self,
        pattern: str,
        extra: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``add_route`` for plain function handlers."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add_route(pattern, func, extra, name=name or func.__name__)
            return func

        return decorator

    def mount(self, prefix: str, handler: HandlerSpec, extra: Mapping[str, Any] | None = None) -> Route:
        """Delegate every URI under *prefix* to *handler*, usually a ``Module``."""
        self._check_not_initialised()
        return self.router.mount(prefix, handler, extra)

    def controller(self, name: str | None = None) -> Callable[[type], type]:
        """Register a controller class for ``"Name::action"`` handler specs."""
        return self.resolver.controller(name)

    # -- Initialisation --

    @property
    def initialised(self) -> bool:
        return self._initialised

    def ensure_initialised(self) -> None:
        """Thread-safe one-time setup with double-check locking.

        Concurrent first requests may all arrive here; exactly one of
        them runs ``setup()`` and freezes the dispatcher.
        """
        if self._initialised:
            return
        with self._init_lock:
            if self._initialised:
                return
            self._initialise()

    def _initialise(self) -> None:
        """Freeze routes and middleware. MUST only be called while holding _init_lock."""
        self.setup()
        for route in self.router.routes:
            if isinstance(route.handler, (str, tuple)):
                self.resolver.validate(route.handler, self.services)
            elif isinstance(route.handler, Dispatcher):
                route.handler.ensure_initialised()
        for middleware in self._middleware_list:
            if isinstance(middleware, Dispatcher):
                middleware.ensure_initialised()
        self.router.compile()
        self._middleware = tuple(self._middleware_list)
        if self._offload is None:
            config = self.services.get("config") if self.services is not None else None
            self._offload = getattr(config, "offload_sync_handlers", True)
        self._initialised = True
        logger.debug(
            "%s initialised: %d routes, %d middleware",
            type(self).__name__,
            len(self.router),
            len(self._middleware),
        )

    def _check_not_initialised(self) -> None:
        if self._initialised:
            msg = (
                "Cannot modify a dispatcher after it has started serving requests. "
                "Register routes and middleware in setup() or before the first request."
            )
            raise RuntimeError(msg)

    # -- Request handling --

    async def __call__(self, request: Request, next: Next | None = None) -> Any:
        """Handle *request*. Usable as a handler or as a middleware.

        When used as a middleware, *next* is ignored: a dispatcher always
        produces the response itself.
        """
        return await self.run(request)

    async def run(self, request: Request) -> Any:
        """Run the middleware chain, ending in ``dispatch``."""
        self.ensure_initialised()
        return await build_chain(self._middleware, self.dispatch)(request)

    async def dispatch(self, request: Request) -> Any:
        """Match *request* against the routes and invoke the handler.

        Raises ``NotFound`` or ``MethodNotAllowed`` when no route
        accepts the request. Handler exceptions propagate unchanged.
        """
        self.ensure_initialised()
        match = self.router.match_request(request)
        handler = self.resolver.make_handler(match.handler, self.services, offload=bool(self._offload))

        previous_extra = request.extra
        request.set_extra(match.extra)
        prefix = match.extra.get("prefix")
        if prefix is not None:
            request.push_uri_prefix(prefix)
            logger.debug("Entering %r (prefix depth %d)", prefix, request.prefix_depth)
        try:
            return await invoke(handler, request, *match.parameters, offload=bool(self._offload))
        finally:
            if prefix is not None:
                request.pop_uri_prefix()
                logger.debug("Leaving %r", prefix)
            request.set_extra(previous_extra)
