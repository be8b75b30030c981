"""Service container — named, lazily-built application services.

Services are either plain values or factories. A factory receives the
container itself, so services can depend on one another::

    services = ServiceContainer()
    services["settings"] = Config({"db": {"dsn": "sqlite://"}})
    services.register("db", lambda c: connect(c["settings"].get("db.dsn")))

    services["db"]    # built on first access, then cached

Names of the form ``log.<name>`` are a shortcut for a ``logging.Logger``
configured from the ``logs.<name>`` settings branch (``name`` and
``level`` keys).
"""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from nestling.errors import ConfigurationError

logger = logging.getLogger("nestling.services")

Factory: TypeAlias = Callable[["ServiceContainer"], Any]

_LOG_PREFIX = "log."


class ServiceContainer:
    """Named services with lazy, optionally shared, construction.

    Shared factories run at most once, even when two requests ask for
    the service at the same time. Non-shared factories run on every
    lookup.
    """

    __slots__ = ("_factories", "_instances", "_lock")

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._instances: dict[str, Any] = dict(values or {})
        self._factories: dict[str, tuple[Factory, bool]] = {}
        self._lock = threading.RLock()

    # -- Registration --

    def register(self, name: str, factory: Factory, *, shared: bool = True) -> None:
        """Register *factory* to build the service *name* on demand."""
        with self._lock:
            self._instances.pop(name, None)
            self._factories[name] = (factory, shared)

    def factory(self, name: str, *, shared: bool = True) -> Callable[[Factory], Factory]:
        """Decorator form of ``register``."""

        def decorator(func: Factory) -> Factory:
            self.register(name, func, shared=shared)
            return func

        return decorator

    def __setitem__(self, name: str, value: Any) -> None:
        with self._lock:
            self._factories.pop(name, None)
            self._instances[name] = value

    def __delitem__(self, name: str) -> None:
        with self._lock:
            found = name in self._instances or name in self._factories
            self._instances.pop(name, None)
            self._factories.pop(name, None)
        if not found:
            raise KeyError(name)

    # -- Lookup --

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        if name in self._instances or name in self._factories:
            return True
        return name.startswith(_LOG_PREFIX) and self._log_settings(name) is not None

    def __getitem__(self, name: str) -> Any:
        try:
            return self._instances[name]
        except KeyError:
            pass

        entry = self._factories.get(name)
        if entry is not None:
            factory, shared = entry
            if not shared:
                return factory(self)
            with self._lock:
                if name not in self._instances:
                    logger.debug("Building shared service %r", name)
                    self._instances[name] = factory(self)
                return self._instances[name]

        if name.startswith(_LOG_PREFIX):
            return self._build_logger(name)

        raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        if name not in self:
            return default
        return self[name]

    def names(self) -> list[str]:
        """Every registered service name, values and factories alike."""
        return sorted({*self._instances, *self._factories})

    def __repr__(self) -> str:
        return f"ServiceContainer({self.names()!r})"

    # -- log.<name> shortcut --

    def _log_settings(self, name: str) -> Mapping[str, Any] | None:
        settings = self._instances.get("settings")
        if settings is None and "settings" in self._factories:
            settings = self["settings"]
        if settings is None:
            return None
        branch = settings.get(f"logs.{name[len(_LOG_PREFIX) :]}")
        return branch if isinstance(branch, Mapping) else None

    def _build_logger(self, name: str) -> logging.Logger:
        short = name[len(_LOG_PREFIX) :]
        options = self._log_settings(name)
        if options is None:
            msg = f"No configuration for log {short!r}; add a [logs.{short}] section."
            raise ConfigurationError(msg)
        log = logging.getLogger(options.get("name", f"nestling.app.{short}"))
        if "level" in options:
            log.setLevel(str(options["level"]).upper())
        with self._lock:
            self._instances.setdefault(name, log)
        return self._instances[name]
