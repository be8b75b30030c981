"""Handler resolution — turn a route's handler spec into a callable.

A route may name its handler three ways:

- ``"Name::action"`` — ``Name`` is looked up in order: the service
  container, an absolute dotted path (``"myapp.users.Users"``, or
  ``".myapp.users.Users"`` with a leading dot), the resolver's registry, then
  ``<namespace>.controllers.<Name>``. Classes are instantiated with the
  service container; instances are used as-is. Static and class methods
  are called on the class itself, with no instance and no hooks.
- ``(instance_or_class, "action")`` — the same, skipping lookup.
- any other callable — used unchanged.

Controller instances with ``before_action``/``after_action`` get their
action wrapped so the hooks run around it.
"""

import importlib
import inspect
import logging
import pkgutil
from collections.abc import Callable
from typing import Any

from nestling._internal.invoke import invoke
from nestling._internal.types import Handler, HandlerSpec
from nestling.controller import HasAfterHook, HasBeforeHook
from nestling.errors import HandlerResolutionError

logger = logging.getLogger("nestling.dispatch")

SEPARATOR = "::"


def split_spec(spec: str) -> tuple[str, str]:
    """Split ``"Name::action"``. Raises HandlerResolutionError if malformed."""
    name, sep, action = spec.partition(SEPARATOR)
    if not sep or not name or not action:
        raise HandlerResolutionError(spec, f"expected 'Name{SEPARATOR}action'")
    return name, action


def _import_dotted(path: str) -> Any:
    try:
        return pkgutil.resolve_name(path)
    except (ImportError, AttributeError, ValueError):
        return None


class HandlerResolver:
    """Resolves handler specs against services, a registry and a namespace.

    Usage::

        resolver = HandlerResolver("myapp")

        @resolver.controller()
        class Users(Controller):
            def index(self, request):
                ...

        handler = resolver.make_handler("Users::index", services)
    """

    __slots__ = ("_registry", "namespace")

    def __init__(self, namespace: str | None = None) -> None:
        self.namespace = namespace
        self._registry: dict[str, Any] = {}

    def register(self, name: str, target: Any) -> None:
        """Register a class (or instance) under *name*."""
        self._registry[name] = target

    def controller(self, name: str | None = None) -> Callable[[type], type]:
        """Decorator form of ``register``; defaults to the class name."""

        def decorator(cls: type) -> type:
            self.register(name or cls.__name__, cls)
            return cls

        return decorator

    # -- Lookup --

    def _find(self, name: str, context: Any) -> Any:
        if context is not None and name in context:
            return context[name]
        if name.startswith("."):
            found = _import_dotted(name[1:])
            if found is not None:
                return found
        elif "." in name:
            found = _import_dotted(name)
            if found is not None:
                return found
        if name in self._registry:
            return self._registry[name]
        if self.namespace:
            dotted = f"{self.namespace}.controllers"
            try:
                module = importlib.import_module(dotted)
            except ModuleNotFoundError as exc:
                # Only a missing controllers module (or package) means "not here"
                if exc.name != dotted and not dotted.startswith(f"{exc.name}."):
                    raise
                module = None
            found = getattr(module, name, None)
            if found is not None:
                return found
        return None

    def _target(self, spec: HandlerSpec) -> tuple[Any, str]:
        if isinstance(spec, str):
            return split_spec(spec)
        if isinstance(spec, tuple) and len(spec) == 2 and isinstance(spec[1], str):
            return spec
        raise HandlerResolutionError(spec, "not a callable, 'Name::action' or (target, 'action')")

    def _instantiate(self, spec: HandlerSpec, target: Any, action: str, context: Any) -> Any:
        if not isinstance(target, type):
            return target
        if isinstance(inspect.getattr_static(target, action, None), (staticmethod, classmethod)):
            return target
        try:
            return target(context)
        except TypeError as exc:
            raise HandlerResolutionError(spec, f"cannot instantiate {target.__name__}: {exc}") from exc

    # -- Public API --

    def validate(self, spec: HandlerSpec, context: Any = None) -> None:
        """Check that *spec* can be resolved without building anything.

        Names found in the service container are only checked for
        presence, since looking them up may construct the service.
        """
        if callable(spec) and not isinstance(spec, tuple):
            return
        target, action = self._target(spec)
        if isinstance(target, str):
            if context is not None and target in context:
                return
            found = self._find(target, None)
            if found is None:
                raise HandlerResolutionError(spec, f"{target!r} not found")
            target = found
        if not callable(getattr(target, action, None)):
            raise HandlerResolutionError(spec, f"no callable action {action!r}")

    def make_handler(self, spec: HandlerSpec, context: Any = None, *, offload: bool = False) -> Handler:
        """Build the callable for *spec*, invoked as ``handler(request, *parameters)``."""
        if callable(spec) and not isinstance(spec, tuple):
            return spec

        target, action = self._target(spec)
        if isinstance(target, str):
            found = self._find(target, context)
            if found is None:
                raise HandlerResolutionError(spec, f"{target!r} not found")
            target = found

        instance = self._instantiate(spec, target, action, context)
        method = getattr(instance, action, None)
        if not callable(method):
            raise HandlerResolutionError(spec, f"no callable action {action!r}")
        if isinstance(instance, type):
            return method
        return _with_hooks(instance, method, offload)


def _with_hooks(instance: Any, action: Handler, offload: bool) -> Handler:
    """Wrap *action* with the instance's before/after hooks, if it has any."""
    before = instance.before_action if isinstance(instance, HasBeforeHook) else None
    after = instance.after_action if isinstance(instance, HasAfterHook) else None
    if before is None and after is None:
        return action

    async def hooked(request: Any, *parameters: Any) -> Any:
        if before is not None:
            intercepted = await invoke(before, request, offload=offload)
            if intercepted:
                logger.debug("before_action of %s short-circuited", type(instance).__name__)
                return intercepted
        result = await invoke(action, request, *parameters, offload=offload)
        if after is not None:
            result = await invoke(after, request, result, offload=offload)
        return result

    return hooked
