"""Read-only, case-insensitive request headers.

Header names are normalised once on construction: lower-cased, with
runs of spaces and underscores turned into dashes, so ``X_Forwarded
For`` and ``x-forwarded-for`` address the same header.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping

_SEPARATORS = re.compile(r"[ _]+")


def normalise_header_name(name: str) -> str:
    """``"Content_Type"`` -> ``"content-type"``."""
    return _SEPARATORS.sub("-", name.strip()).lower()


class Headers(Mapping[str, str]):
    """Case-insensitive header mapping.

    ``headers[name]`` returns the first value sent for *name*;
    ``get_list`` returns every value in the order received.
    """

    __slots__ = ("_values",)

    def __init__(self, pairs: Iterable[tuple[str | bytes, str | bytes]] = ()) -> None:
        values: dict[str, list[str]] = {}
        for name, value in pairs:
            if isinstance(name, bytes):
                name = name.decode("latin-1")
            if isinstance(value, bytes):
                value = value.decode("latin-1")
            values.setdefault(normalise_header_name(name), []).append(value)
        self._values = values

    @classmethod
    def from_asgi(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        return cls(raw)

    def __getitem__(self, key: str) -> str:
        return self._values[normalise_header_name(key)][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalise_header_name(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        first = {name: values[0] for name, values in self._values.items()}
        return f"Headers({first!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._values.get(normalise_header_name(key))
        return values[0] if values else default

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(normalise_header_name(key), ()))
