"""Constants and enumerations for nimbus_db."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "BINARY_HINT",
    "Combinator",
    "CounterMode",
    "EARTH_RADIUS_KM",
    "EARTH_RADIUS_MI",
    "FORGOT_PASSWORD_HINT",
    "FieldKind",
    "GEOPOINT_HINT",
    "ID_FIELD_SUFFIX",
    "INCREMENT_SUFFIX",
    "MAX_EXPAND_DEPTH",
    "NAME_MAX_LENGTH",
    "NAME_MIN_LENGTH",
    "Operator",
    "Ordering",
]


class FieldKind(str, Enum):
    """Semantic kind of a declared model field."""

    PRIMITIVE = "primitive"
    PRIMITIVE_ARRAY = "primitive_array"
    OBJECT = "object"
    OBJECT_ARRAY = "object_array"
    MODEL = "model"
    MODEL_ARRAY = "model_array"
    COUNTER = "counter"
    GEOPOINT = "geopoint"
    BINARY = "binary"
    FORGOT_PASSWORD = "forgot_password"

    @property
    def is_relation(self) -> bool:
        return self in (FieldKind.MODEL, FieldKind.MODEL_ARRAY)


class CounterMode(str, Enum):
    """How a counter is written on the next save."""

    SET = "set"
    INCREMENT = "increment"


class Combinator(str, Enum):
    """Boolean combinator of a query group."""

    AND = "and"
    OR = "or"


class Operator(str, Enum):
    """Query condition operators.

    The value is the bracketed token appended to the field name in the
    query string; equality has no token.
    """

    EQ = ""
    NE = "[ne]"
    LT = "[lt]"
    GT = "[gt]"
    LTE = "[lte]"
    GTE = "[gte]"
    IN = "[in]"
    NULL = "[null]"
    NEAR = "[near]"
    WITHIN = "[within]"

    @property
    def suffix(self) -> str:
        return self.value


class Ordering(str, Enum):
    """Sort direction for ``field_is_ordered_by``."""

    ASCENDING = "asc"
    DESCENDING = "desc"


# Wire-type tags sent in the field types header
GEOPOINT_HINT = "geopoint"
BINARY_HINT = "binary"
FORGOT_PASSWORD_HINT = "forgotpassword"

# Naming rules enforced by the server
NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 25
ID_FIELD_SUFFIX = "_id"

INCREMENT_SUFFIX = "[inc]"
MAX_EXPAND_DEPTH = 3

# Used for converting distances to radians in geo queries
EARTH_RADIUS_MI = 3956.6
EARTH_RADIUS_KM = 6367.5
