"""Nestling exception hierarchy.

Shared across Router, Dispatcher, resolver, and the error boundary so
every module raises and catches the same types.

Routing and resolution errors are never caught inside the dispatch
core. They travel up to ``Application.handle`` which maps them to
responses exactly once.
"""

from dataclasses import dataclass
from typing import Any, TypeAlias


class NestlingError(Exception):
    """Base for all nestling-specific errors."""


class ConfigurationError(NestlingError):
    """Raised when routes, services, or handlers are wired up wrongly.

    Configuration errors are fatal: they describe the application, not
    the request, so retrying the request cannot fix them.
    """


class HandlerResolutionError(ConfigurationError):
    """A handler spec could not be turned into something callable."""

    def __init__(self, spec: Any, reason: str) -> None:
        self.spec = spec
        self.reason = reason
        super().__init__(f"Cannot resolve handler {spec!r}: {reason}")


@dataclass(frozen=True, slots=True)
class HTTPError(NestlingError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. The application
    boundary catches these and dispatches to the matching
    ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400 — the request could not be understood."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class Unauthorised(HTTPError):  # noqa: N818
    """401 — authentication is required."""

    def __init__(self, detail: str = "Unauthorised") -> None:
        super().__init__(status=401, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request URI."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — a route matched the URI but none accepted the method.

    ``allowed`` is the union of the verbs of every route whose pattern
    matched. The ``Allow`` header carries the same list.
    """

    allowed: frozenset[str]

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            detail=detail or f"Method not allowed. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )
        object.__setattr__(self, "allowed", frozenset(allowed))


class NotImplementedHTTP(HTTPError):  # noqa: N818
    """501 — the endpoint exists but has not been built yet."""

    def __init__(self, detail: str = "Not Implemented") -> None:
        super().__init__(status=501, detail=detail)


class ServiceUnavailable(HTTPError):  # noqa: N818
    """503 — the application cannot serve the request right now."""

    def __init__(self, detail: str = "Service Unavailable") -> None:
        super().__init__(status=503, detail=detail)


# Failures produced by Router.match. Use in ``except ROUTING_ERRORS:``.
ROUTING_ERRORS: tuple[type[HTTPError], ...] = (NotFound, MethodNotAllowed)

RoutingError: TypeAlias = NotFound | MethodNotAllowed
