"""Outbound HTTP response.

Unlike the request, a response is built up incrementally as it travels
back out through controller hooks and middleware, so it is mutable.
Every setter returns the response itself for chaining::

    Response("Created").set_status(201).set_header("X-Id", "42")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from http import HTTPStatus

from nestling.http.cookies import SetCookie

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)
_CHARSET = re.compile(r"charset=[\w\-]*", re.IGNORECASE)
_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

MSG_INFO = "info"
MSG_SUCCESS = "success"
MSG_WARNING = "warning"
MSG_ERROR = "error"


def normalise_response_header(name: str) -> str:
    """``"x-request-id"`` -> ``"X-Request-Id"``."""
    return "-".join(part.capitalize() for part in name.strip().split("-"))


def _check_status(code: int) -> None:
    try:
        HTTPStatus(code)
    except ValueError:
        msg = f"{code} is not a valid HTTP status code"
        raise ValueError(msg) from None


@dataclass(slots=True)
class Response:
    """A mutable HTTP response.

    ``content_type`` is kept apart from the other headers so the
    charset can be managed in one place.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: dict[str, str] = field(default_factory=dict)
    cookies: list[SetCookie] = field(default_factory=list)
    messages: list[dict[str, str]] = field(default_factory=list)
    reason: str = ""
    redirect_prefix: str = ""

    def __post_init__(self) -> None:
        _check_status(self.status)

    # -- Status --

    def set_status(self, status: int, reason: str = "") -> Response:
        _check_status(status)
        self.status = status
        self.reason = reason
        return self

    @property
    def reason_phrase(self) -> str:
        return self.reason or HTTPStatus(self.status).phrase

    @property
    def is_redirect(self) -> bool:
        return self.status in _REDIRECT_STATUSES

    # -- Headers --

    def set_header(self, name: str, value: str) -> Response:
        """Set a header, replacing any previous value.

        ``Content-Type`` values without a charset get the current one
        appended.
        """
        name = normalise_response_header(name)
        if name == "Content-Type":
            return self.set_content_type(value)
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: str | None = None) -> str | None:
        name = normalise_response_header(name)
        if name == "Content-Type":
            return self.content_type
        return self.headers.get(name, default)

    def set_content_type(self, content_type: str) -> Response:
        if "charset" not in content_type and not content_type.startswith(
            "application/octet-stream"
        ):
            content_type = f"{content_type}; charset={self.charset}"
        self.content_type = content_type
        return self

    @property
    def charset(self) -> str:
        match = _CHARSET.search(self.content_type)
        return match.group(0).partition("=")[2] if match else "utf-8"

    def set_charset(self, charset: str) -> Response:
        if _CHARSET.search(self.content_type):
            self.content_type = _CHARSET.sub(f"charset={charset}", self.content_type)
        else:
            self.content_type = f"{self.content_type}; charset={charset}"
        return self

    def header_items(self) -> list[tuple[str, str]]:
        """All headers, ``Content-Type`` first, ready to send."""
        return [("Content-Type", self.content_type), *self.headers.items()]

    # -- Body --

    def set_body(self, body: str | bytes) -> Response:
        self.body = body
        return self

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode(self.charset)
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode(self.charset)
        return self.body

    # -- Cookies --

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        self.cookies.append(
            SetCookie(
                name=name,
                value=value,
                max_age=max_age,
                path=path,
                domain=domain,
                secure=secure,
                httponly=httponly,
                samesite=samesite,
            )
        )
        return self

    def delete_cookie(self, name: str, path: str = "/") -> Response:
        """Expire a cookie on the client (``Max-Age=0``)."""
        self.cookies.append(SetCookie(name=name, value="", max_age=0, path=path))
        return self

    # -- Redirects --

    def redirect(self, url: str, permanent: bool = False, prefix: bool | None = None) -> Response:
        """Turn this response into a 301/302 redirect.

        With a ``redirect_prefix`` set, relative URLs that don't already
        start with it get it prepended. Pass *prefix* to force the
        decision either way.
        """
        if self.redirect_prefix:
            if prefix is None:
                prefix = not _ABSOLUTE_URL.match(url) and not url.startswith(self.redirect_prefix)
            if prefix:
                url = f"{self.redirect_prefix}{url}"
        self.set_status(301 if permanent else 302)
        self.headers["Location"] = url
        return self

    # -- Flash messages --

    def add_message(self, text: str, kind: str = MSG_INFO, title: str = "") -> Response:
        """Queue a message for display on the next request."""
        self.messages.append({"type": kind, "title": title, "text": text})
        return self
