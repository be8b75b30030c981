"""Request-scoped context via ContextVar.

``request_var`` holds the request currently being handled. It is set
by ``Application.handle`` and reset after each request, so code deep in
a service can reach the request without having it passed down.

``ContextVar`` is task-local under asyncio, and anyio copies the
context into worker threads, so offloaded sync handlers see it too.
"""

from contextvars import ContextVar

from nestling.http.request import Request

request_var: ContextVar[Request] = ContextVar("nestling_request")
"""The current request. Set by the application before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
