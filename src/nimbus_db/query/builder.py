"""Fluent query builder.

Conditions added one after another are ANDed. ``or_()`` joins the last
term and the next one into an OR group; ``or_(subquery)`` and
``and_(subquery)`` join a whole subquery the same way.

Examples
--------
>>> q = Query("dog").field_is_equal_to("name", "herc").or_().field_is_equal_to("name", "bodie")
>>> q.arguments()
[('[or1].name', 'herc'), ('[or1].name', 'bodie')]
>>> q = Query("dog").field_is_ordered_by("age", Ordering.DESCENDING).is_in_range(0, 9)
>>> q.headers()
{'X-Nimbus-OrderBy': 'age:desc', 'Range': 'objects=0-9'}
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from urllib.parse import urlencode

from nimbus_db.config import ClientConfig, default_config
from nimbus_db.constants import Combinator, Operator, Ordering
from nimbus_db.exceptions import UsageError
from nimbus_db.models.base import Model
from nimbus_db.models.types import GeoPoint
from nimbus_db.query.encoder import encode_expression
from nimbus_db.query.expression import Condition, Group, Node

if TYPE_CHECKING:
    from nimbus_db.api.datastore import Datastore
    from nimbus_db.models.schemas import RequestOptions

__all__ = ["ModelQuery", "Query", "QueryField"]

M = TypeVar("M", bound=Model)


class QueryField:
    """Several conditions on one field.

    Examples
    --------
    >>> Query("dog").field(QueryField("age").is_greater_than(2).is_less_than(9)).arguments()
    [('age[gt]', '2'), ('age[lt]', '9')]
    """

    def __init__(self, name: str):
        self.name = name
        self.conditions: list[Condition] = []

    def _add(self, operator: Operator, value: Any) -> QueryField:
        self.conditions.append(Condition(self.name, operator, value))
        return self

    def is_equal_to(self, value: Any) -> QueryField:
        return self._add(Operator.EQ, value)

    def is_not_equal_to(self, value: Any) -> QueryField:
        return self._add(Operator.NE, value)

    def is_less_than(self, value: Any) -> QueryField:
        return self._add(Operator.LT, value)

    def is_greater_than(self, value: Any) -> QueryField:
        return self._add(Operator.GT, value)

    def is_less_than_or_equal_to(self, value: Any) -> QueryField:
        return self._add(Operator.LTE, value)

    def is_greater_than_or_equal_to(self, value: Any) -> QueryField:
        return self._add(Operator.GTE, value)

    def is_in(self, values: Iterable[Any]) -> QueryField:
        return self._add(Operator.IN, list(values))

    def is_null(self) -> QueryField:
        return self._add(Operator.NULL, True)

    def is_not_null(self) -> QueryField:
        return self._add(Operator.NULL, False)


class Query:
    """Read or delete request against one schema.

    Parameters
    ----------
    schema : str, optional
        Schema to query; subqueries passed to `or_` and `and_` need none
    config : ClientConfig, optional
        Header naming and expansion limits
    """

    def __init__(self, schema: str | None = None, config: ClientConfig | None = None):
        self.schema = schema
        self.config = config or default_config
        self._terms: list[Node] = []
        self._pending: Combinator | None = None
        self._order_by: list[tuple[str, Ordering]] = []
        self._range: tuple[int, int | None] | None = None
        self._selection: list[str] | None = None
        self._expand_depth: int | None = None

    def __repr__(self) -> str:
        return f"Query({self.schema!r}, {self.arguments()!r})"

    # -- combining --------------------------------------------------------

    def _add(self, node: Node) -> Query:
        pending, self._pending = self._pending, None
        if pending is Combinator.OR and self._terms:
            previous = self._terms.pop()
            if isinstance(previous, Group) and previous.combinator is Combinator.OR:
                group = previous
            else:
                group = Group(Combinator.OR, [previous])
            group.add(node)
            self._terms.append(group)
        elif isinstance(node, Group) and node.combinator is Combinator.AND:
            self._terms.extend(node.children)
        else:
            self._terms.append(node)
        return self

    def _as_node(self) -> Node | None:
        if not self._terms:
            return None
        if len(self._terms) == 1:
            return copy.deepcopy(self._terms[0])
        return Group(Combinator.AND, copy.deepcopy(self._terms))

    def _join(self, combinator: Combinator, subquery: Query | None) -> Query:
        self._pending = combinator
        if subquery is None:
            return self
        node = subquery._as_node()
        if node is None:
            self._pending = None
            return self
        return self._add(node)

    def or_(self, subquery: Query | None = None) -> Query:
        """OR the last term with the next condition, or with ``subquery``."""
        return self._join(Combinator.OR, subquery)

    def and_(self, subquery: Query | None = None) -> Query:
        """AND the next condition, or ``subquery``, with the terms so far."""
        return self._join(Combinator.AND, subquery)

    def expression(self) -> Group:
        """The expression tree; the root is an AND group."""
        return Group(Combinator.AND, list(self._terms))

    # -- conditions -------------------------------------------------------

    def _condition(self, field: str, operator: Operator, value: Any) -> Query:
        return self._add(Condition(field, operator, value))

    def field(self, query_field: QueryField) -> Query:
        """Add the conditions of ``query_field`` as one ANDed term."""
        conditions = [copy.copy(c) for c in query_field.conditions]
        if not conditions:
            return self
        if len(conditions) == 1:
            return self._add(conditions[0])
        return self._add(Group(Combinator.AND, conditions))

    def field_is_equal_to(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.EQ, value)

    def field_is_not_equal(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.NE, value)

    def field_is_less_than(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.LT, value)

    def field_is_greater_than(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.GT, value)

    def field_is_less_than_or_equal_to(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.LTE, value)

    def field_is_greater_than_or_equal_to(self, field: str, value: Any) -> Query:
        return self._condition(field, Operator.GTE, value)

    def field_is_in(self, field: str, values: Iterable[Any]) -> Query:
        return self._condition(field, Operator.IN, list(values))

    def field_is_null(self, field: str) -> Query:
        return self._condition(field, Operator.NULL, True)

    def field_is_not_null(self, field: str) -> Query:
        return self._condition(field, Operator.NULL, False)

    def field_is_near(self, field: str, point: GeoPoint) -> Query:
        """Sort results by distance from ``point``."""
        return self._condition(field, Operator.NEAR, (point.lat, point.lon))

    def field_is_near_within_mi(self, field: str, point: GeoPoint, max_miles: float) -> Query:
        return self._condition(
            field, Operator.NEAR, (point.lat, point.lon, GeoPoint.miles_to_radians(max_miles))
        )

    def field_is_near_within_km(self, field: str, point: GeoPoint, max_km: float) -> Query:
        return self._condition(
            field, Operator.NEAR, (point.lat, point.lon, GeoPoint.km_to_radians(max_km))
        )

    def field_is_within_radius_in_mi(self, field: str, point: GeoPoint, radius: float) -> Query:
        return self._condition(
            field, Operator.WITHIN, (point.lat, point.lon, GeoPoint.miles_to_radians(radius))
        )

    def field_is_within_radius_in_km(self, field: str, point: GeoPoint, radius: float) -> Query:
        return self._condition(
            field, Operator.WITHIN, (point.lat, point.lon, GeoPoint.km_to_radians(radius))
        )

    def field_is_within_box(
        self, field: str, lower_left: GeoPoint, upper_right: GeoPoint
    ) -> Query:
        return self._condition(
            field,
            Operator.WITHIN,
            (lower_left.lat, lower_left.lon, upper_right.lat, upper_right.lon),
        )

    # -- request shaping --------------------------------------------------

    def field_is_ordered_by(
        self, field: str, ordering: Ordering | str = Ordering.ASCENDING
    ) -> Query:
        self._order_by.append((field.lower(), Ordering(ordering)))
        return self

    def is_in_range(self, start: int, end: int | None = None) -> Query:
        """Restrict to results ``start`` through ``end``, both inclusive."""
        if start < 0 or (end is not None and end < start):
            raise UsageError(f"Invalid range {start}-{end}")
        self._range = (start, end)
        return self

    def select(self, fields: Iterable[str]) -> Query:
        self._selection = [f.lower() for f in fields]
        return self

    def expand_depth_is(self, depth: int) -> Query:
        if not 0 <= depth <= self.config.max_expand_depth:
            raise UsageError(
                f"Expand depth must be between 0 and {self.config.max_expand_depth}, "
                f"got {depth}"
            )
        self._expand_depth = depth
        return self

    @property
    def selection(self) -> list[str] | None:
        return self._selection

    @property
    def expand_depth(self) -> int | None:
        return self._expand_depth

    def arguments(self) -> list[tuple[str, str]]:
        """Encoded query string pairs."""
        return encode_expression(self.expression())

    def query_string(self) -> str:
        return urlencode(self.arguments())

    def headers(self) -> dict[str, str]:
        headers = {}
        if self._order_by:
            headers[self.config.order_by_header] = ",".join(
                f"{name}:{ordering.value}" for name, ordering in self._order_by
            )
        if self._range is not None:
            start, end = self._range
            headers["Range"] = f"objects={start}-{'' if end is None else end}"
        if self._selection is not None:
            headers[self.config.select_header] = ",".join(self._selection)
        if self._expand_depth is not None:
            headers[self.config.expand_header] = str(self._expand_depth)
        return headers


class ModelQuery(Query, Generic[M]):
    """Query whose results are instances of a model type.

    Examples
    --------
    >>> books = ModelQuery(Book).field_is_greater_than("pages", 300).send(datastore)
    """

    def __init__(self, model_type: type[M], config: ClientConfig | None = None):
        super().__init__(model_type.schema_name(), config)
        self.model_type = model_type

    def send(self, datastore: Datastore, options: RequestOptions | None = None) -> list[M]:
        return datastore.query(self.model_type, self, options)

    def count(self, datastore: Datastore) -> int:
        return datastore.count(self.model_type, self)
