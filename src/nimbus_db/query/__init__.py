"""Query expressions, their query string encoding and the fluent builder."""

from __future__ import annotations

__all__ = [
    "Condition",
    "Group",
    "ModelQuery",
    "Query",
    "QueryField",
    "encode_expression",
    "render_value",
]

from .builder import ModelQuery, Query, QueryField
from .encoder import encode_expression, render_value
from .expression import Condition, Group
