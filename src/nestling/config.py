"""Application configuration.

Two layers:

- ``AppConfig`` is a frozen dataclass for the framework's own knobs:
  immutable after creation, IDE-autocompletable.
- ``Config`` is the application's free-form settings tree, addressed
  with dotted keys (``"logs.debug.level"``) and usually loaded from a
  TOML file at startup.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nestling.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Framework configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, secret_key="s3cr3t")
    """

    debug: bool = False

    # Signs the flash messages cookie
    secret_key: str = ""

    # Run plain ``def`` handlers and hooks in a worker thread so a
    # blocking handler never stalls other in-flight requests
    offload_sync_handlers: bool = True

    # Prepended to relative redirect URLs (Response.redirect)
    web_path: str = ""

    # Flash messages
    messages_cookie: str = "nestling_messages"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB


_MISSING = object()


class Config:
    """Dotted-key settings store.

    Nested dicts are addressed with dot notation::

        config = Config({"logs": {"debug": {"level": "DEBUG"}}})
        config.get("logs.debug.level")   # "DEBUG"
        config.get("logs.error", {})     # {}

    Values are plain Python objects. ``get`` returns the stored object
    itself, so treat branches as read-only.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {}
        if data:
            self.merge(data)

    def load(self, path: str | Path) -> Config:
        """Merge settings from a TOML file.

        Raises ``ConfigurationError`` if the file is missing or not
        valid TOML.
        """
        path = Path(path)
        try:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
        except FileNotFoundError:
            msg = f"Configuration file not found: {path}"
            raise ConfigurationError(msg) from None
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid configuration file {path}: {exc}"
            raise ConfigurationError(msg) from exc
        return self.merge(data)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at *key*, or *default* if any segment is missing."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any) -> Config:
        """Assign *value* at *key*, creating intermediate branches."""
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = value
        return self

    def merge(self, data: Mapping[str, Any]) -> Config:
        """Set every top-level key of *data*. Later merges win per key."""
        for key, value in data.items():
            self.set(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        return self._data

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __repr__(self) -> str:
        return f"Config({self._data!r})"
