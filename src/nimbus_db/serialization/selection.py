"""Partial field selection."""

from __future__ import annotations

from collections.abc import Iterable

__all__ = ["Selection"]


class Selection:
    """A set of dotted field paths restricting which fields take part.

    ``Selection(None)`` selects everything. Paths are compared
    case-insensitively, so the same selection applies to attribute names
    on the way out and lowercase wire keys on the way in.

    Examples
    --------
    >>> s = Selection(["title", "author.name"])
    >>> s.is_selected("Title"), s.is_selected("pages")
    (True, False)
    >>> s.sub_selection("author").is_selected("name")
    True
    """

    __slots__ = ("_paths",)

    def __init__(self, paths: Iterable[str] | None = None):
        self._paths = None if paths is None else frozenset(p.lower() for p in paths)

    @classmethod
    def all(cls) -> Selection:
        return cls(None)

    @classmethod
    def coerce(cls, value: Selection | Iterable[str] | None) -> Selection:
        return value if isinstance(value, Selection) else cls(value)

    @property
    def paths(self) -> frozenset[str] | None:
        return self._paths

    @property
    def is_all(self) -> bool:
        return self._paths is None

    def is_selected(self, field: str) -> bool:
        """A field is selected if it, or any path below it, is listed."""
        if self._paths is None:
            return True
        name = field.lower()
        prefix = name + "."
        return any(p == name or p.startswith(prefix) for p in self._paths)

    def sub_selection(self, field: str) -> Selection:
        """Selection relative to a nested field.

        Listing a relation without any subpath selects all of its fields.
        """
        if self._paths is None:
            return self
        name = field.lower()
        prefix = name + "."
        if name in self._paths:
            return Selection(None)
        return Selection(p[len(prefix):] for p in self._paths if p.startswith(prefix))

    def header_value(self) -> str | None:
        return None if self._paths is None else ",".join(sorted(self._paths))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Selection):
            return NotImplemented
        return self._paths == other._paths

    def __hash__(self) -> int:
        return hash(self._paths)

    def __repr__(self) -> str:
        return f"Selection({None if self._paths is None else sorted(self._paths)!r})"
