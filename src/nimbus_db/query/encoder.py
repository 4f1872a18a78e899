"""Flatten an expression tree into query string pairs.

Groups below the root are addressed by a bracketed prefix holding the
combinator and a 1-based index that counts groups of that combinator
within the parent. Prefixes of nested groups concatenate.

Examples
--------
>>> tree = Group(Combinator.AND, [
...     Condition("age", Operator.GTE, 2),
...     Group(Combinator.OR, [
...         Condition("dog", Operator.EQ, "herc"),
...         Group(Combinator.AND, [
...             Condition("cat", Operator.EQ, "fluffy"),
...             Condition("color", Operator.EQ, "grey"),
...         ]),
...     ]),
... ])
>>> encode_expression(tree)
[('age[gte]', '2'), ('[or1].dog', 'herc'), ('[or1].[and1].cat', 'fluffy'), ('[or1].[and1].color', 'grey')]
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from nimbus_db.constants import Combinator
from nimbus_db.models.types import GeoPoint
from nimbus_db.query.expression import Condition, Group, Node
from nimbus_db.utils.time import to_epoch_millis

__all__ = ["encode_expression", "render_value"]


def render_value(value: Any) -> str:
    """Render a condition value as a query string literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(render_value(v) for v in value)
    if isinstance(value, GeoPoint):
        return value.query_string()
    if isinstance(value, datetime):
        return str(to_epoch_millis(value))
    if isinstance(value, Enum):
        return render_value(value.value)
    return str(value)


def _encode_children(group: Group, prefix: str, out: list[tuple[str, str]]) -> None:
    counts = {Combinator.AND: 0, Combinator.OR: 0}
    for child in group.children:
        if isinstance(child, Condition):
            out.append((prefix + child.key, render_value(child.value)))
            continue
        counts[child.combinator] += 1
        _encode_children(
            child,
            f"{prefix}[{child.combinator.value}{counts[child.combinator]}].",
            out,
        )


def encode_expression(root: Node) -> list[tuple[str, str]]:
    """
    Compile an expression into ``(key, value)`` pairs.

    Parameters
    ----------
    root : Condition or Group
        Expression; an AND group at the root adds no prefix

    Returns
    -------
    list of tuple
        Pairs in tree order
    """
    if isinstance(root, Condition) or root.combinator is not Combinator.AND:
        root = Group(Combinator.AND, [root])
    out: list[tuple[str, str]] = []
    _encode_children(root, "", out)
    return out
