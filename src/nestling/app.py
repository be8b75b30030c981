"""Application — the root dispatcher and ASGI entry point.

The application is a ``Dispatcher`` that also owns the things only the
root should: configuration, the service container, registered error
handlers, and the boundary where routing and handler errors become
responses.

Lifecycle:
    1. Setup: routes, middleware, modules, error handlers.
    2. First request (or ASGI lifespan startup): freeze.
    3. Runtime: per-request dispatch; everything request-scoped lives
       on the ``Request``.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from contextvars import Token
from typing import Any

from nestling._internal.asgi import Receive, Scope, Send
from nestling._internal.invoke import invoke
from nestling._internal.types import ErrorHandler
from nestling.config import AppConfig, Config
from nestling.context import request_var
from nestling.dispatcher import Dispatcher
from nestling.errors import HTTPError
from nestling.http.request import Request
from nestling.http.response import Response
from nestling.middleware.messages import FlashMessages
from nestling.middleware.protocol import Next
from nestling.routing.router import Router
from nestling.server.errors import handle_http_error, handle_internal_error
from nestling.server.negotiation import negotiate
from nestling.server.sender import send_response
from nestling.services import ServiceContainer

logger = logging.getLogger("nestling.server")


class Application(Dispatcher):
    """The root of a nestling app.

    Usage::

        app = Application(AppConfig(debug=True), settings=Config().load("app.toml"))

        app.add_route(r"GET:^/$", "Pages::home")
        app.mount("/admin", Admin(app.services))

        @app.error(404)
        def not_found(request):
            return "Nothing here", 404

    Serve ``app`` with any ASGI server. An application is always the
    root of the dispatch tree; nest a ``Module`` instead.

    Services registered automatically: ``app``, ``config`` (the
    ``AppConfig``), ``settings`` (the ``Config``), and the non-shared
    factories ``router`` and ``response``.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        settings: Config | Mapping[str, Any] | None = None,
        services: ServiceContainer | None = None,
        namespace: str | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.settings = settings if isinstance(settings, Config) else Config(settings)
        container = services if services is not None else ServiceContainer()
        super().__init__(
            container,
            namespace=namespace,
            offload_sync_handlers=self.config.offload_sync_handlers,
        )
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []

        container["app"] = self
        container["config"] = self.config
        container["settings"] = self.settings
        container.register("router", lambda _services: Router(), shared=False)
        container.register("response", self._new_response, shared=False)

    def _new_response(self, _services: ServiceContainer) -> Response:
        return Response(redirect_prefix=self.config.web_path)

    # -- Setup --

    def setup(self) -> None:
        if self.config.secret_key:
            self._middleware_list.insert(
                0, FlashMessages(self.config.secret_key, self.config.messages_cookie)
            )
        self.routes(self.router)

    def routes(self, router: Router) -> None:
        """Register the application's routes. Override in subclasses."""

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_initialised()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    def before(self, func: Callable[[Request], Any]) -> Callable[[Request], Any]:
        """Run *func* before routing. A truthy result bypasses the routes."""

        async def before_routing(request: Request, next: Next) -> Any:
            result = await invoke(func, request)
            if result:
                return result
            return await next(request)

        self.add_middleware(before_routing)
        return func

    def after(self, func: Callable[[Request, Response], Any]) -> Callable[[Request, Response], Any]:
        """Run *func* on every routed response; its return value replaces it."""

        async def after_routing(request: Request, next: Next) -> Any:
            response = negotiate(await next(request))
            result = await invoke(func, request, response)
            return response if result is None else result

        self.add_middleware(after_routing)
        return func

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook run once on ASGI lifespan startup."""
        self._check_not_initialised()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a hook run once on ASGI lifespan shutdown."""
        self._check_not_initialised()
        self._shutdown_hooks.append(func)
        return func

    # -- Request handling --

    async def handle(self, request: Request) -> Response:
        """Dispatch *request* and map any error to a response.

        This is the only place ``NotFound``, ``MethodNotAllowed`` and
        handler exceptions are caught.
        """
        token: Token[Request] = request_var.set(request)
        try:
            self._check_content_length(request)
            response = negotiate(await self.run(request))
        except HTTPError as exc:
            response = await handle_http_error(exc, request, self._error_handlers, self.config.debug)
        except Exception as exc:
            response = await handle_internal_error(
                exc, request, self._error_handlers, self.config.debug
            )
        finally:
            request_var.reset(token)
        return response

    def _check_content_length(self, request: Request) -> None:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.config.max_content_length:
            raise HTTPError(status=413, detail="Payload Too Large")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:  # type: ignore[override]
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then turns HTTP scopes into a
        ``Request`` and sends back the handled ``Response``.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        response = await self.handle(request)
        await send_response(response, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Initialises the app at startup (before the first HTTP request),
        so bad handler specs fail the deploy instead of the first user.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self.ensure_initialised()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.exception("Application startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return
