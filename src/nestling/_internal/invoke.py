"""Invoke helpers — call sync or async handlers uniformly.

Handlers, hooks and middleware can be ``def`` or ``async def``. Any
code that calls user-provided callables goes through ``invoke`` so the
sync/async check lives in exactly one place.

Usage::

    from nestling._internal.invoke import invoke

    result = await invoke(handler, request, *parameters, offload=True)

With ``offload=True`` plain ``def`` callables run in a worker thread
(``anyio.to_thread``) so a blocking handler never stalls the event
loop for other in-flight requests.
"""

import functools
import inspect
from typing import Any

import anyio.to_thread


def is_async_callable(obj: Any) -> bool:
    """True for coroutine functions and objects with an async ``__call__``."""
    while isinstance(obj, functools.partial):
        obj = obj.func
    if inspect.iscoroutinefunction(obj):
        return True
    call = getattr(obj, "__call__", None)  # noqa: B004
    return call is not None and inspect.iscoroutinefunction(call)


async def invoke(handler: Any, *args: Any, offload: bool = False, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it's awaitable."""
    if offload and not is_async_callable(handler):
        result = await anyio.to_thread.run_sync(functools.partial(handler, *args, **kwargs))
    else:
        result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
