"""Pydantic schemas for API and CLI boundaries.

These validate what callers hand in (request options, query expressions
read from JSON files). Models themselves are plain dataclasses.

Examples
--------
>>> RequestOptions(expand_depth=2, selection=["title"]).request_headers()
{'X-Nimbus-Select': 'title', 'X-Nimbus-Expand': '2'}
>>> spec = GroupSpec.model_validate(
...     {"combinator": "or", "children": [{"field": "a", "op": "lt", "value": 3}]}
... )
>>> spec.to_expression().combinator
<Combinator.OR: 'or'>
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from nimbus_db.config import ClientConfig, default_config
from nimbus_db.constants import MAX_EXPAND_DEPTH, Combinator, Operator
from nimbus_db.query.expression import Condition, Group
from nimbus_db.serialization.selection import Selection

__all__ = ["ConditionSpec", "GroupSpec", "RequestOptions"]


class RequestOptions(BaseModel):
    """Per-request options for fetch, save and query calls."""

    model_config = ConfigDict(frozen=True)

    expand_depth: int = Field(
        0,
        ge=0,
        le=MAX_EXPAND_DEPTH,
        description="Relation hops to expand in the response",
    )
    selection: list[str] | None = Field(
        None,
        description="Fields to return; all when omitted",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers",
    )

    def selection_object(self) -> Selection:
        return Selection(self.selection)

    def request_headers(self, config: ClientConfig = default_config) -> dict[str, str]:
        headers = {}
        if self.selection is not None:
            headers[config.select_header] = ",".join(s.lower() for s in self.selection)
        if self.expand_depth > 0:
            headers[config.expand_header] = str(self.expand_depth)
        headers.update(self.headers)
        return headers


class ConditionSpec(BaseModel):
    """One condition of a query expression file."""

    field: str = Field(..., min_length=1)
    op: Literal[
        "eq", "ne", "lt", "gt", "lte", "gte", "in", "null", "near", "within"
    ] = "eq"
    value: Any = None

    def to_condition(self) -> Condition:
        operator = Operator[self.op.upper()]
        value = self.value
        if operator is Operator.NULL and value is None:
            value = True
        return Condition(self.field, operator, value)


class GroupSpec(BaseModel):
    """A group of conditions in a query expression file."""

    combinator: Combinator = Combinator.AND
    children: list[Union[ConditionSpec, GroupSpec]] = Field(default_factory=list)

    def to_expression(self) -> Group:
        group = Group(self.combinator)
        for child in self.children:
            if isinstance(child, ConditionSpec):
                group.children.append(child.to_condition())
            else:
                group.children.append(child.to_expression())
        return group


GroupSpec.model_rebuild()
