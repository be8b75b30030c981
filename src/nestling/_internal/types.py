"""Shared type aliases used across nestling modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Terminal unit of work, called as handler(request, *parameters)
Handler: TypeAlias = Callable[..., Any]

# What a route may name as its handler: "Controller::action",
# (instance_or_class, "action"), or a plain callable
HandlerSpec: TypeAlias = str | tuple[Any, str] | Callable[..., Any]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
