"""Middleware protocol and Next type alias.

A middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> Any: ...

No base class required. The framework checks the shape, not the lineage.

A middleware may return without calling ``next`` to short-circuit the
rest of the chain. Whatever ``next`` returns is the raw handler result
(a ``Response``, ``str``, ``dict``...); middleware that needs a
``Response`` passes it through ``negotiate`` first.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeAlias

from nestling.http.request import Request

# The rest of the chain, bound to the current request
Next: TypeAlias = Callable[[Request], Awaitable[Any]]


class Middleware(Protocol):
    """Protocol for nestling middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(request: Request, next: Next) -> Any:
            start = time.monotonic()
            response = negotiate(await next(request))
            elapsed = time.monotonic() - start
            return response.set_header("X-Time", f"{elapsed:.3f}")

        # Class middleware
        class RequireLogin:
            async def __call__(self, request: Request, next: Next) -> Any:
                if not request.auth_user:
                    raise Unauthorised()
                return await next(request)

    A ``Dispatcher`` is itself a valid middleware. It ignores ``next``
    and always produces the response.
    """

    async def __call__(self, request: Request, next: Next) -> Any: ...
