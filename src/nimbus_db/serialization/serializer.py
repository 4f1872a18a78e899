"""Model graph to wire JSON.

`to_wire` walks a model graph down to a given expansion depth and
returns the JSON value to send together with the relation and type hint
side tables that go into request headers.

Examples
--------
>>> result = to_wire(book, expansion_depth=1)
>>> result.value["author"]["name"]
'Frank Herbert'
>>> result.relation_hints.to_header()
'author=author'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from nimbus_db.config import ClientConfig, default_config
from nimbus_db.constants import (
    BINARY_HINT,
    FORGOT_PASSWORD_HINT,
    GEOPOINT_HINT,
    INCREMENT_SUFFIX,
    CounterMode,
    FieldKind,
)
from nimbus_db.exceptions import ConfigurationError
from nimbus_db.models.base import Model
from nimbus_db.models.metadata import (
    PRIMITIVE_TYPES,
    FieldInfo,
    Registry,
    TypeMetadata,
    default_registry,
)
from nimbus_db.models.types import Counter
from nimbus_db.serialization.codec import ValueCodec, default_codec
from nimbus_db.serialization.hints import RelationHints, TypeHints
from nimbus_db.serialization.selection import Selection
from nimbus_db.utils.uid import new_object_id

__all__ = ["Serializer", "WireResult", "to_wire", "to_wire_many"]


@dataclass
class WireResult:
    """Output of one serialization pass.

    Attributes
    ----------
    value : Any
        JSON object, JSON array, or a bare id for a collapsed relation
    relation_hints : RelationHints
        Relation path to target schema
    type_hints : TypeHints
        Field path to special wire type
    """

    value: Any
    relation_hints: RelationHints = field(default_factory=RelationHints)
    type_hints: TypeHints = field(default_factory=TypeHints)

    def headers(self, config: ClientConfig = default_config) -> dict[str, str]:
        """Hint headers for a write request; empty tables are left out."""
        headers = {}
        if self.relation_hints:
            headers[config.relations_header] = self.relation_hints.to_header()
        if self.type_hints:
            headers[config.field_types_header] = self.type_hints.to_header()
        return headers


class _Pass:
    """Mutable state of one `Serializer.to_wire` call.

    Side effects on the graph are collected here and applied only once the
    whole graph encoded without error.
    """

    def __init__(self) -> None:
        self.relation_hints = RelationHints()
        self.type_hints = TypeHints()
        self.counters: list[Counter] = []
        self.new_ids: dict[int, tuple[Model, str]] = {}

    def id_for(self, instance: Model) -> str:
        if instance.id is not None:
            return instance.id
        entry = self.new_ids.get(id(instance))
        if entry is None:
            entry = self.new_ids[id(instance)] = (instance, new_object_id())
        return entry[1]

    def push(self, name: str) -> None:
        self.relation_hints.push(name)
        self.type_hints.push(name)

    def pop(self) -> None:
        self.relation_hints.pop()
        self.type_hints.pop()

    def commit(self) -> None:
        for instance, oid in self.new_ids.values():
            instance.id = oid
        for counter in self.counters:
            counter.drain()


class Serializer:
    """Turns model graphs into wire JSON.

    Parameters
    ----------
    registry : Registry, optional
        Metadata registry, the default registry when omitted
    codec : ValueCodec, optional
        Codec for plain values
    config : ClientConfig, optional
        Naming limits
    """

    def __init__(
        self,
        registry: Registry | None = None,
        codec: ValueCodec | None = None,
        config: ClientConfig | None = None,
    ):
        self.registry = registry or default_registry
        self.codec = codec or default_codec
        self.config = config or default_config
        self._name_re = re.compile(
            rf"^[A-Za-z0-9_]{{{self.config.name_min_length},{self.config.name_max_length}}}$"
        )

    def to_wire(
        self,
        instance: Model,
        expansion_depth: int = 0,
        selection: Selection | Iterable[str] | None = None,
    ) -> WireResult:
        """
        Serialize ``instance`` and everything it references.

        Parameters
        ----------
        instance : Model
            Root of the graph
        expansion_depth : int
            Relation hops to inline; deeper relations are sent as ids and a
            negative depth collapses ``instance`` itself to its id
        selection : Selection or iterable of str, optional
            Fields to include; all when omitted

        Returns
        -------
        WireResult

        Raises
        ------
        ConfigurationError
            If a name is invalid or a value cannot be encoded. Nothing in
            the graph is modified in that case.
        """
        state = _Pass()
        value = self._encode(instance, expansion_depth, Selection.coerce(selection), state)
        state.commit()
        return WireResult(value, state.relation_hints, state.type_hints)

    def to_wire_many(self, instances: Iterable[Model]) -> WireResult:
        """Serialize several instances at depth 0 into one JSON array."""
        state = _Pass()
        everything = Selection.all()
        values = [self._encode(obj, 0, everything, state) for obj in instances]
        state.commit()
        return WireResult(values, state.relation_hints, state.type_hints)

    def validate(self, meta: TypeMetadata) -> None:
        """Check the schema and field names of a model type."""
        if not self._name_re.match(meta.schema_name):
            raise ConfigurationError(
                f"Invalid schema name {meta.schema_name!r}: names must be alphanumeric "
                f"and {self.config.name_min_length} to {self.config.name_max_length} "
                "characters long"
            )
        id_field = meta.id_field_name.lower()
        for info in meta:
            if not self._name_re.match(info.name):
                raise ConfigurationError(
                    f"Invalid field name {meta.model_type.__name__}.{info.name}: names "
                    f"must be alphanumeric and {self.config.name_min_length} to "
                    f"{self.config.name_max_length} characters long"
                )
            if info.wire_name == id_field:
                raise ConfigurationError(
                    f"Field {meta.model_type.__name__}.{info.name} collides with the "
                    f"id field {meta.id_field_name!r}"
                )

    def _encode(self, instance: Model, depth: int, selection: Selection, state: _Pass) -> Any:
        oid = state.id_for(instance)
        if depth < 0:
            return oid
        meta = self.registry.metadata_for(type(instance))
        self.validate(meta)
        body: dict[str, Any] = {}
        for info in meta:
            if not selection.is_selected(info.name):
                continue
            value = getattr(instance, info.name, None)
            if value is None:
                continue
            if info.kind is FieldKind.BINARY:
                state.type_hints.add(info.name, BINARY_HINT)
                if value.has_local_data:
                    body[info.wire_name] = value.to_wire()
                continue
            self._encode_field(info, value, depth, selection, state, body)
        body[meta.id_field_name] = oid
        return body

    def _encode_field(
        self,
        info: FieldInfo,
        value: Any,
        depth: int,
        selection: Selection,
        state: _Pass,
        body: dict[str, Any],
    ) -> None:
        name = info.wire_name
        kind = info.kind
        if kind is FieldKind.PRIMITIVE:
            if isinstance(value, PRIMITIVE_TYPES):
                body[name] = value
            else:
                body[name] = self.codec.dump(value, type(value), info.name)
        elif kind is FieldKind.PRIMITIVE_ARRAY:
            body[name] = self.codec.dump_many(value, info.element_type, info.name)
        elif kind is FieldKind.OBJECT:
            body[name] = self.codec.dump(value, info.declared_type, info.name)
        elif kind is FieldKind.OBJECT_ARRAY:
            body[name] = self.codec.dump_many(value, info.element_type, info.name)
        elif kind is FieldKind.MODEL:
            state.relation_hints.add(info.name, value.schema_name())
            state.push(info.name)
            try:
                body[name] = self._encode(
                    value, depth - 1, selection.sub_selection(info.name), state
                )
            finally:
                state.pop()
        elif kind is FieldKind.MODEL_ARRAY:
            elements = list(value)
            for element in elements:
                if not isinstance(element, Model):
                    raise ConfigurationError(
                        f"Field {info.name!r} holds a {type(element).__name__}, "
                        "expected models"
                    )
            if elements:
                state.relation_hints.add(info.name, elements[0].schema_name())
            sub = selection.sub_selection(info.name)
            state.push(info.name)
            try:
                body[name] = [self._encode(e, depth - 1, sub, state) for e in elements]
            finally:
                state.pop()
        elif kind is FieldKind.COUNTER:
            if value.mode is CounterMode.SET:
                body[name] = value.outgoing_value()
            else:
                body[name + INCREMENT_SUFFIX] = value.pending_delta
            state.counters.append(value)
        elif kind is FieldKind.GEOPOINT:
            state.type_hints.add(info.name, GEOPOINT_HINT)
            body[name] = value.to_wire()
        elif kind is FieldKind.FORGOT_PASSWORD:
            state.type_hints.add(info.name, FORGOT_PASSWORD_HINT)
            body[name] = str(value)
        else:  # pragma: no cover
            logger.warning(f"Skipping field {info.name!r} of unknown kind {kind}")


_default_serializer = Serializer()


def to_wire(
    instance: Model,
    expansion_depth: int = 0,
    selection: Selection | Iterable[str] | None = None,
) -> WireResult:
    """Serialize with the default registry; see `Serializer.to_wire`."""
    return _default_serializer.to_wire(instance, expansion_depth, selection)


def to_wire_many(instances: Iterable[Model]) -> WireResult:
    """Serialize a list for a bulk save; see `Serializer.to_wire_many`."""
    return _default_serializer.to_wire_many(instances)
