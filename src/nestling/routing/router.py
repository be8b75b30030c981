"""Ordered regex router.

Routes are registered during setup and frozen by ``compile()``. After
that the route table is an immutable tuple, safe to read from any
number of concurrent requests.

Patterns are raw regular expressions searched (not anchored) against
the request URI; add ``^``/``$`` where you need them. Capturing groups
become positional handler parameters. Prefix a pattern with the verbs
it accepts::

    router.add_route(r"^/about$", "Pages::about")              # any verb
    router.add_route(r"GET:^/users$", "Users::index")
    router.add_route(r"(GET|POST):^/users/(\\d+)$", "Users::show")
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from nestling._internal.types import HandlerSpec
from nestling.errors import ConfigurationError, MethodNotAllowed, NotFound
from nestling.http.request import Request
from nestling.routing.route import Route, RouteMatch

logger = logging.getLogger("nestling.dispatch")

_METHOD_PREFIX = re.compile(r"^\(?([A-Za-z|]+)\)?:(.*)$", re.DOTALL)
_GROUP = re.compile(r"\((?!\?)(?:[^()\\]|\\.)*\)")
_ANCHORS = re.compile(r"^\^|(?<!\\)\$$")
_ESCAPED = re.compile(r"\\(.)")


def split_methods(pattern: str) -> tuple[frozenset[str], str]:
    """Split a ``"(GET|POST):/path"`` spec into verbs and pattern.

    Patterns without a verb prefix accept every method.
    """
    match = _METHOD_PREFIX.match(pattern)
    if match is None:
        return frozenset(), pattern
    methods = frozenset(m.upper() for m in match.group(1).split("|") if m)
    return methods, match.group(2)


class Router:
    """Ordered regex router.

    Usage::

        router = Router()
        router.add_route(r"(GET|POST):^/users/(\\d+)$", "Users::show")
        router.compile()
        match = router.match("/users/42", "GET")
        match.parameters   # ("42",)
    """

    __slots__ = ("_compiled", "_routes", "_table")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._table: tuple[Route, ...] = ()
        self._compiled = False

    # -- Registration --

    def add(self, route: Route) -> Route:
        """Append a pre-built route. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        self._routes.append(route)
        return route

    def add_route(
        self,
        pattern: str,
        handler: HandlerSpec,
        extra: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> Route:
        """Register *handler* for URIs matching *pattern*."""
        methods, regex = split_methods(pattern)
        try:
            route = Route(regex, handler, methods, extra or {}, name)
        except re.error as exc:
            msg = f"Invalid route pattern {pattern!r}: {exc}"
            raise ConfigurationError(msg) from exc
        return self.add(route)

    def mount(
        self,
        prefix: str,
        handler: HandlerSpec,
        extra: Mapping[str, Any] | None = None,
    ) -> Route:
        """Delegate every URI under *prefix* to *handler*.

        The prefix is pushed onto the request's prefix stack while
        *handler* runs, so a mounted module sees URIs relative to its
        mount point.
        """
        prefix = "/" + prefix.strip("/")
        pattern = f"^{re.escape(prefix)}(?=/|$)" if prefix != "/" else "^/"
        return self.add_route(pattern, handler, {**(extra or {}), "prefix": prefix})

    def compile(self) -> tuple[Route, ...]:
        """Freeze the route table and return it. No more routes can be added."""
        if not self._compiled:
            self._table = tuple(self._routes)
            self._compiled = True
        return self._table

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def routes(self) -> tuple[Route, ...]:
        """All registered routes in registration order."""
        return self._table if self._compiled else tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    # -- Matching --

    def match(self, uri: str, method: str = "GET") -> RouteMatch:
        """Find the first route matching *uri* that accepts *method*.

        A route whose pattern matches but whose verbs don't is skipped,
        not fatal: a later route may still accept the method.

        Raises ``MethodNotAllowed`` (carrying every verb seen on a
        matching route) if patterns matched but no verb did, and
        ``NotFound`` if no pattern matched at all.
        """
        method = method.upper()
        witnessed: set[str] = set()
        structural = False

        for route in self._table if self._compiled else self._routes:
            found = route.regex.search(uri)
            if found is None:
                continue
            if not route.allows(method):
                structural = True
                witnessed.update(route.methods)
                continue
            logger.debug("%s %s matched %r", method, uri, route.pattern)
            return RouteMatch(route=route, parameters=_parameters(found))

        if structural:
            raise MethodNotAllowed(frozenset(witnessed))
        raise NotFound(f"No route matches {method} {uri!r}")

    def match_request(self, request: Request) -> RouteMatch:
        """Match a request's prefix-relative URI and method."""
        return self.match(request.uri, request.method)

    # -- Reversal --

    def reverse(self, handler: HandlerSpec, *args: Any) -> str:
        """Build a URI for *handler* (or a route name).

        Each capturing group in the route's pattern is replaced, in
        order, by the next positional argument. Anchors are dropped::

            router.add_route(r"^/users/(\\d+)$", "Users::show")
            router.reverse("Users::show", 42)   # "/users/42"

        Raises ``LookupError`` if no route uses *handler*.
        """
        for route in self._routes:
            if route.handler == handler or (route.name is not None and route.name == handler):
                uri = _ANCHORS.sub("", route.pattern)
                for arg in args:
                    uri = _GROUP.sub(lambda _m, value=str(arg): value, uri, count=1)
                return _ESCAPED.sub(r"\1", uri)
        msg = f"No route found for {handler!r}"
        raise LookupError(msg)


def _parameters(found: re.Match[str]) -> tuple[str | None, ...]:
    """Captured groups in order, with trailing unmatched groups dropped.

    Dropping the tail lets handler defaults apply to optional groups
    that didn't participate in the match.
    """
    groups = list(found.groups())
    while groups and groups[-1] is None:
        groups.pop()
    return tuple(groups)
