"""Case-insensitive HTTP header multi-maps.

``Headers`` is the read-only view handed to handlers with the request.
``MutableHeaders`` backs every ``Response`` and keeps insertion order, so
appending the same name twice (e.g. ``Set-Cookie``) yields two headers on
the wire.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, TypeAlias

HeaderSource: TypeAlias = "Headers | Mapping[str, str] | Iterable[tuple[str, str]] | None"


def _pairs(source: Any) -> list[tuple[str, str]]:
    if source is None:
        return []
    if isinstance(source, Headers):
        return list(source.multi_items())
    if isinstance(source, Mapping):
        return [(str(name), str(value)) for name, value in source.items()]
    return [(str(name), str(value)) for name, value in source]


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive HTTP headers.

    ``__getitem__`` returns the first matching value.
    ``get_list`` returns all values for a header.
    Iteration yields each distinct name once, lower-cased.
    """

    __slots__ = ("_items",)

    _items: list[tuple[str, str]]

    def __init__(self, source: HeaderSource = None) -> None:
        object.__setattr__(self, "_items", _pairs(source))

    @classmethod
    def from_raw(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        """Build headers from ASGI byte pairs (latin-1 decoded)."""
        return cls([(name.decode("latin-1"), value.decode("latin-1")) for name, value in raw])

    def __getitem__(self, key: str) -> str:
        key_lower = key.lower()
        for name, value in self._items:
            if name.lower() == key_lower:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        key_lower = key.lower()
        return any(name.lower() == key_lower for name, _ in self._items)

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._items:
            key = name.lower()
            if key not in seen:
                seen.add(key)
                yield key

    def __len__(self) -> int:
        return len(set(self))

    def __repr__(self) -> str:
        items = ", ".join(f"{name!r}: {value!r}" for name, value in self._items)
        return f"{type(self).__name__}([{items}])"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* in insertion order."""
        key_lower = key.lower()
        return [value for name, value in self._items if name.lower() == key_lower]

    def multi_items(self) -> Iterator[tuple[str, str]]:
        """Yield every ``(name, value)`` pair, duplicates included."""
        yield from self._items

    def copy(self) -> MutableHeaders:
        """Return a mutable copy."""
        return MutableHeaders(self._items)


class MutableHeaders(Headers):
    """Headers that can be appended to, replaced, and deleted."""

    __slots__ = ()

    def append(self, name: str, value: str) -> None:
        """Add a value, keeping any existing values for *name*."""
        self._items.append((name, value))

    def set(self, name: str, value: str) -> None:
        """Replace every value for *name* with a single *value*."""
        self.delete(name)
        self._items.append((name, value))

    def setdefault(self, name: str, value: str) -> str:  # type: ignore[override]
        """Set *name* only if it is not present; return the effective value."""
        existing = self.get(name)
        if existing is not None:
            return existing
        self._items.append((name, value))
        return value

    def delete(self, name: str) -> None:
        """Remove every value for *name* (no error if missing)."""
        key_lower = name.lower()
        self._items[:] = [(n, v) for n, v in self._items if n.lower() != key_lower]

    def update(self, source: HeaderSource) -> None:
        """``set()`` each pair from *source*."""
        for name, value in _pairs(source):
            self.set(name, value)


def combine_headers(*sources: Headers | None) -> MutableHeaders:
    """Union several header sets; the first source to name a header wins.

    Every value a source carries for a name is kept (``Set-Cookie`` style
    duplicates survive), but later sources only fill in names that no
    earlier source provided.
    """
    result = MutableHeaders()
    claimed: set[str] = set()
    for source in sources:
        if not source:
            continue
        names = set(source)
        for name, value in source.multi_items():
            if name.lower() not in claimed:
                result.append(name, value)
        claimed |= names
    return result
