"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Any

Built-in middleware:
    FlashMessages -- Signed cookie flash messages (uses itsdangerous)
"""

from nestling.middleware.messages import FlashMessages
from nestling.middleware.protocol import Middleware, Next

__all__ = [
    "FlashMessages",
    "Middleware",
    "Next",
]
