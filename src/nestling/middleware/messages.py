"""Flash messages — carry response messages over to the next request.

Messages queued with ``Response.add_message()`` are serialised into a
signed cookie. On the following request they are loaded into
``request.messages`` and the cookie is expired unless new messages
replace it.

Signing uses ``itsdangerous`` so clients cannot forge messages. A
cookie with a bad signature is treated as carrying no messages.
"""

import logging
from typing import Any

from itsdangerous import BadSignature, URLSafeSerializer

from nestling.errors import ConfigurationError
from nestling.http.request import Request
from nestling.middleware.protocol import Next
from nestling.server.negotiation import negotiate

logger = logging.getLogger("nestling.server")

SALT = "nestling.messages"


class FlashMessages:
    """Signed-cookie flash message middleware.

    Usage::

        app.add_middleware(FlashMessages("my-secret-key"))

        def save(request):
            return Response().add_message("Saved", MSG_SUCCESS).redirect("/")

        def index(request):
            for message in request.messages:
                ...
    """

    __slots__ = ("_cookie_name", "_serializer")

    def __init__(self, secret_key: str, cookie_name: str = "nestling_messages") -> None:
        if not secret_key:
            msg = "FlashMessages requires a non-empty secret_key."
            raise ConfigurationError(msg)
        self._cookie_name = cookie_name
        self._serializer = URLSafeSerializer(secret_key, salt=SALT)

    def _load(self, request: Request) -> list[dict[str, str]]:
        value = request.cookies.get(self._cookie_name)
        if not value:
            return []
        try:
            data = self._serializer.loads(value)
        except BadSignature:
            logger.debug("Discarding flash messages cookie with a bad signature")
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    async def __call__(self, request: Request, next: Next) -> Any:
        request.messages[:] = self._load(request)

        response = negotiate(await next(request))

        if response.messages:
            response.set_cookie(self._cookie_name, self._serializer.dumps(response.messages))
        elif self._cookie_name in request.cookies:
            response.delete_cookie(self._cookie_name)
        return response
