"""HTTP request value object.

Request metadata (method, path, headers, query, cookies) is frozen at
creation. Two pieces of per-request dispatch state live alongside it in
mutable containers owned by the request:

- the URI prefix stack, pushed and popped as the request is delegated
  into nested modules;
- the route ``extra`` metadata and flash messages.

Keeping that state on the request (and never on a dispatcher) is what
lets one dispatcher serve many requests concurrently.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import unquote

from nestling._internal.asgi import Receive
from nestling.http.cookies import parse_cookies
from nestling.http.headers import Headers
from nestling.http.query import QueryParams

_REPEATED_SLASHES = re.compile(r"/{2,}")
_BOT_AGENTS = re.compile(r"bot|crawl|slurp|spider|archive", re.IGNORECASE)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def normalise_path(path: str) -> str:
    """Decode and trim a request path. The root is always ``"/"``."""
    return unquote(path).rstrip("/") or "/"


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True)
class Request:
    """An inbound HTTP request.

    ``path`` is the full request path. ``uri`` is the path as seen by
    the dispatcher currently handling the request: the full path minus
    every prefix pushed by enclosing modules.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    cookies: Mapping[str, str] = field(default_factory=dict)
    client: tuple[str, int] | None = None
    scheme: str = "http"
    http_version: str = "1.1"

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(default=_no_body, repr=False, compare=False)

    # Private: request-scoped dispatch state. The containers are mutable
    # even though the field references are frozen.
    _prefix: list[str] = field(default_factory=list, repr=False, compare=False)
    _state: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Factories --

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope and receive callable."""
        headers = Headers.from_asgi(scope.get("headers", ()))
        client = scope.get("client")
        return cls(
            method=_effective_method(scope["method"], headers),
            path=normalise_path(scope["path"]),
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie")),
            client=tuple(client) if client else None,
            scheme=scope.get("scheme", "http"),
            http_version=scope.get("http_version", "1.1"),
            _receive=receive,
        )

    @classmethod
    def build(
        cls,
        method: str = "GET",
        uri: str = "/",
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        client: tuple[str, int] | None = None,
    ) -> Request:
        """Create a Request in-process, e.g. for tests or sub-requests.

        *uri* may carry a query string (``"/search?q=eggs"``).
        """
        path, _, query_string = uri.partition("?")
        header_obj = Headers((headers or {}).items())

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": body, "more_body": False}

        return cls(
            method=_effective_method(method, header_obj),
            path=normalise_path(path),
            headers=header_obj,
            query=QueryParams(query_string),
            cookies=parse_cookies(header_obj.get("cookie")),
            client=client,
            _receive=receive,
        )

    # -- URI prefix stack --

    def push_uri_prefix(self, prefix: str) -> None:
        self._prefix.append(prefix)

    def pop_uri_prefix(self) -> str | None:
        return self._prefix.pop() if self._prefix else None

    def set_uri_prefix(self, prefix: str | list[str] | tuple[str, ...] | None) -> Request:
        """Replace the whole prefix stack."""
        self._prefix.clear()
        if isinstance(prefix, (list, tuple)):
            self._prefix.extend(prefix)
        elif prefix:
            self._prefix.append(prefix)
        return self

    @property
    def uri_prefix(self) -> str:
        """The stacked prefixes joined, with repeated slashes collapsed."""
        return _REPEATED_SLASHES.sub("/", "".join(self._prefix))

    @property
    def prefix_depth(self) -> int:
        return len(self._prefix)

    @property
    def uri(self) -> str:
        """The request path relative to the innermost mounted prefix."""
        prefix = self.uri_prefix
        base = prefix.rstrip("/")
        if not base:
            return self.path
        if self.path in (prefix, base):
            return "/"
        if self.path.startswith(base + "/"):
            return self.path[len(base) :]
        return self.path

    @property
    def full_uri(self) -> str:
        return self.path

    @property
    def url(self) -> str:
        """Full request path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    # -- Route metadata --

    @property
    def extra(self) -> Mapping[str, Any]:
        """Extra metadata of the route currently handling the request."""
        return self._state.get("extra", _EMPTY)

    def set_extra(self, extra: Mapping[str, Any]) -> None:
        self._state["extra"] = extra

    def get_extra(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)

    # -- Flash messages --

    @property
    def messages(self) -> list[dict[str, str]]:
        """Messages carried over from the previous response."""
        return self._state.setdefault("messages", [])

    # -- Client information --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def ip(self) -> str:
        """Public client IP address, or ``""`` for private/reserved ones.

        A request from localhost carrying ``X-Forwarded-For`` (a local
        reverse proxy) reports the first forwarded address instead.
        """
        candidate = self.client[0] if self.client else ""
        forwarded = self.headers.get("x-forwarded-for")
        if candidate == "127.0.0.1" and forwarded:
            candidate = forwarded.split(",")[0].strip()
        try:
            address = ipaddress.ip_address(candidate)
        except ValueError:
            return ""
        if address.is_private or address.is_reserved or address.is_loopback:
            return ""
        return str(address)

    @property
    def is_ajax(self) -> bool:
        return (self.headers.get("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"

    @property
    def is_bot(self) -> bool:
        return bool(_BOT_AGENTS.search(self.headers.get("user-agent") or ""))

    @property
    def auth_credentials(self) -> tuple[str, str] | None:
        """``(user, password)`` from a Basic ``Authorization`` header."""
        scheme, _, token = (self.headers.get("authorization") or "").partition(" ")
        if scheme.lower() != "basic" or not token:
            return None
        try:
            decoded = base64.b64decode(token, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        user, _, password = decoded.partition(":")
        return user, password

    @property
    def auth_user(self) -> str:
        credentials = self.auth_credentials
        return credentials[0] if credentials else ""

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body. Cached after the first read."""
        if "body" in self._state:
            return self._state["body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._state["body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        import json as json_module

        return json_module.loads(await self.body())

    async def form(self) -> QueryParams:
        """Parse an ``application/x-www-form-urlencoded`` body."""
        if "form" not in self._state:
            self._state["form"] = QueryParams(await self.text())
        return self._state["form"]


def _effective_method(method: str, headers: Headers) -> str:
    override = headers.get("x-http-method-override")
    return (override or method).upper()
