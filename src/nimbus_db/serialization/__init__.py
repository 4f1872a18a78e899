"""Conversion between model graphs and wire JSON."""

from __future__ import annotations

__all__ = [
    "Reconciler",
    "RelationHints",
    "Selection",
    "Serializer",
    "TypeHints",
    "ValueCodec",
    "WireResult",
    "fill_from",
    "find_existing",
    "new_from_wire",
    "to_wire",
    "to_wire_many",
    "update_model_list",
]

from .codec import ValueCodec
from .hints import RelationHints, TypeHints
from .reconciler import Reconciler, fill_from, find_existing, new_from_wire, update_model_list
from .selection import Selection
from .serializer import Serializer, WireResult, to_wire, to_wire_many
