"""Side tables describing relation targets and special wire types."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

__all__ = ["PathHints", "RelationHints", "TypeHints"]


class PathHints:
    """Ordered map from dotted field path to a tag.

    The current scope is a stack of field names; `add` records a path
    relative to it.

    Examples
    --------
    >>> hints = RelationHints()
    >>> hints.add("author", "person")
    >>> with hints.scope("author"):
    ...     hints.add("address", "place")
    >>> hints.to_header()
    'author=person&author.address=place'
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._scope: list[str] = []

    def push(self, field: str) -> None:
        self._scope.append(field.lower())

    def pop(self) -> None:
        self._scope.pop()

    @contextmanager
    def scope(self, field: str) -> Iterator[None]:
        self.push(field)
        try:
            yield
        finally:
            self.pop()

    def path(self, field: str) -> str:
        return ".".join([*self._scope, field.lower()])

    def add(self, field: str, tag: str) -> None:
        self._entries[self.path(field)] = tag.lower()

    def items(self) -> list[tuple[str, str]]:
        return list(self._entries.items())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __getitem__(self, path: str) -> str:
        return self._entries[path]

    def to_header(self) -> str:
        """``&``-joined ``path=tag`` pairs."""
        return "&".join(f"{k}={v}" for k, v in self._entries.items())


class RelationHints(PathHints):
    """Path to target schema name for every serialized relation."""


class TypeHints(PathHints):
    """Path to wire type tag (geopoint, binary, forgotpassword)."""
