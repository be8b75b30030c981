"""Route and RouteMatch frozen dataclasses."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from nestling._internal.types import HandlerSpec


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    ``pattern`` is a raw regular expression searched against the
    request URI. An empty ``methods`` set accepts every verb.
    """

    pattern: str
    handler: HandlerSpec
    methods: frozenset[str] = frozenset()
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    name: str | None = None
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", re.compile(self.pattern))
        object.__setattr__(self, "methods", frozenset(m.upper() for m in self.methods))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def allows(self, method: str) -> bool:
        return not self.methods or method in self.methods


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match. Built per request, never kept."""

    route: Route
    parameters: tuple[str | None, ...]

    @property
    def handler(self) -> HandlerSpec:
        return self.route.handler

    @property
    def extra(self) -> Mapping[str, Any]:
        return self.route.extra
