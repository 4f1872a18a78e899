"""Boolean query expression tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from nimbus_db.constants import Combinator, Operator

__all__ = ["Condition", "Group", "Node"]


@dataclass
class Condition:
    """A single ``field <operator> value`` test.

    Attributes
    ----------
    field : str
        Field name, sent as given
    operator : Operator
        Comparison operator
    value : Any
        Literal, list of literals, or tuple of coordinates
    """

    field: str
    operator: Operator
    value: Any

    @property
    def key(self) -> str:
        return self.field + self.operator.suffix


@dataclass
class Group:
    """Conditions and nested groups joined by one combinator."""

    combinator: Combinator
    children: list[Node] = field(default_factory=list)

    def add(self, node: Node) -> None:
        """Append ``node``, merging a group with the same combinator."""
        if isinstance(node, Group) and node.combinator is self.combinator:
            self.children.extend(node.children)
        else:
            self.children.append(node)

    def __len__(self) -> int:
        return len(self.children)


Node = Union[Condition, Group]
