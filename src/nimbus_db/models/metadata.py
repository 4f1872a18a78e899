"""Field classification and the per-type metadata registry.

Every model type is inspected once. The result, a `TypeMetadata`, maps
each persisted field to its `~nimbus_db.constants.FieldKind` and keeps a
lowercase lookup so incoming wire keys resolve case-insensitively.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import inspect
import sys
import threading
import types
import typing
from dataclasses import dataclass
from types import MappingProxyType
from typing import Annotated, Any, Mapping, Union, get_args, get_origin

from loguru import logger

from nimbus_db.constants import FieldKind
from nimbus_db.models.base import Model
from nimbus_db.models.types import BinaryFile, Counter, ForgotPasswordEmail, GeoPoint

__all__ = [
    "FieldInfo",
    "Registry",
    "TypeMetadata",
    "classify",
    "classify_type",
    "default_registry",
]

PRIMITIVE_TYPES: tuple[type, ...] = (str, int, float, bool)

# Declared collection type -> concrete container built on decode
_CONTAINERS: dict[Any, type] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    cabc.Sequence: list,
    cabc.MutableSequence: list,
    cabc.Collection: list,
    cabc.Iterable: list,
    cabc.Set: frozenset,
    cabc.MutableSet: set,
}

_SPECIAL_KINDS: dict[type, FieldKind] = {
    Counter: FieldKind.COUNTER,
    GeoPoint: FieldKind.GEOPOINT,
    BinaryFile: FieldKind.BINARY,
    ForgotPasswordEmail: FieldKind.FORGOT_PASSWORD,
}


@dataclass(frozen=True)
class FieldInfo:
    """Classification of one declared field.

    Attributes
    ----------
    name : str
        Attribute name on the model
    kind : FieldKind
        Semantic kind
    declared_type : Any
        Declared type with Optional/Annotated removed
    element_type : type, optional
        Element type for collection kinds, None if unparameterized
    container_type : type, optional
        Concrete container created when decoding collection kinds
    """

    name: str
    kind: FieldKind
    declared_type: Any
    element_type: Any = None
    container_type: type | None = None

    @property
    def wire_name(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class TypeMetadata:
    """Read-only description of a model type."""

    model_type: type
    schema_name: str
    id_field_name: str
    fields: Mapping[str, FieldInfo]
    wire_names: Mapping[str, str]

    def resolve(self, wire_key: str) -> FieldInfo | None:
        """Find the field for an incoming key, ignoring case."""
        name = self.wire_names.get(wire_key.lower())
        return None if name is None else self.fields[name]

    def __iter__(self):
        return iter(self.fields.values())


def _unwrap(tp: Any) -> Any:
    """Strip ``Annotated`` and ``Optional`` wrappers."""
    origin = get_origin(tp)
    if origin is Annotated:
        return _unwrap(get_args(tp)[0])
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return _unwrap(args[0])
    return tp


def _is_model_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, Model)


def classify_type(tp: Any) -> tuple[FieldKind, Any, Any, type | None]:
    """
    Classify a declared field type.

    Parameters
    ----------
    tp : Any
        Declared type annotation (already evaluated)

    Returns
    -------
    tuple
        ``(kind, declared_type, element_type, container_type)``

    Examples
    --------
    >>> classify_type(list[str])[0]
    <FieldKind.PRIMITIVE_ARRAY: 'primitive_array'>
    >>> classify_type(int | None)[0]
    <FieldKind.PRIMITIVE: 'primitive'>
    """
    tp = _unwrap(tp)
    origin = get_origin(tp)
    container_key = origin if origin is not None else tp
    if container_key in _CONTAINERS:
        container = _CONTAINERS[container_key]
        args = [a for a in get_args(tp) if a is not Ellipsis]
        if not args:
            return FieldKind.OBJECT_ARRAY, tp, None, container
        element = _unwrap(args[0])
        if element in PRIMITIVE_TYPES:
            return FieldKind.PRIMITIVE_ARRAY, tp, element, container
        if _is_model_type(element):
            return FieldKind.MODEL_ARRAY, tp, element, container
        return FieldKind.OBJECT_ARRAY, tp, element, container
    if tp in PRIMITIVE_TYPES:
        return FieldKind.PRIMITIVE, tp, None, None
    if _is_model_type(tp):
        return FieldKind.MODEL, tp, None, None
    if isinstance(tp, type):
        for special, kind in _SPECIAL_KINDS.items():
            if issubclass(tp, special):
                return kind, tp, None, None
    return FieldKind.OBJECT, tp, None, None


def _resolve_hints(model_type: type, localns: Mapping[str, Any]) -> dict[str, Any]:
    """Evaluate field annotations, field by field when some cannot be."""
    try:
        return typing.get_type_hints(model_type, localns=dict(localns), include_extras=True)
    except NameError:
        pass
    hints: dict[str, Any] = {}
    for klass in reversed(model_type.__mro__):
        module = sys.modules.get(klass.__module__)
        globalns = dict(vars(module)) if module is not None else {}
        for name, annotation in inspect.get_annotations(klass).items():
            holder = type("_FieldHint", (), {"__annotations__": {name: annotation}})
            try:
                hints[name] = typing.get_type_hints(
                    holder, globalns=globalns, localns=dict(localns), include_extras=True
                )[name]
            except NameError as e:
                logger.warning(f"Cannot resolve type of {model_type.__name__}.{name}: {e}")
                hints[name] = Any
    return hints


def classify(
    model_type: type, localns: Mapping[str, Any] | None = None
) -> TypeMetadata:
    """
    Build the metadata for a model type.

    Walks every dataclass field of ``model_type``, including inherited ones,
    and skips fields whose name starts with an underscore. Field types that
    cannot be resolved are classified as `FieldKind.OBJECT`.

    Parameters
    ----------
    model_type : type[Model]
        Dataclass deriving from `Model`
    localns : Mapping, optional
        Extra names for resolving string annotations

    Raises
    ------
    TypeError
        If ``model_type`` is not a `Model` subclass
    """
    if not _is_model_type(model_type):
        raise TypeError(f"{model_type!r} is not a Model type")
    hints = _resolve_hints(model_type, localns or {})
    fields: dict[str, FieldInfo] = {}
    if dataclasses.is_dataclass(model_type):
        for f in dataclasses.fields(model_type):
            if f.name.startswith("_"):
                continue
            kind, declared, element, container = classify_type(hints.get(f.name, f.type))
            fields[f.name] = FieldInfo(f.name, kind, declared, element, container)
    wire_names = {info.wire_name: name for name, info in fields.items()}
    return TypeMetadata(
        model_type=model_type,
        schema_name=model_type.schema_name(),
        id_field_name=model_type.id_field_name(),
        fields=MappingProxyType(fields),
        wire_names=MappingProxyType(wire_names),
    )


class Registry:
    """Cache of `TypeMetadata`, computed at most once per type.

    Reads after the first computation take no lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metadata: dict[type, TypeMetadata] = {}
        self._schemas: dict[str, type] = {}

    def _localns(self) -> dict[str, Any]:
        return {t.__name__: t for t in self._schemas.values()}

    def metadata_for(self, model_type: type) -> TypeMetadata:
        meta = self._metadata.get(model_type)
        if meta is not None:
            return meta
        with self._lock:
            meta = self._metadata.get(model_type)
            if meta is None:
                meta = classify(model_type, self._localns())
                self._metadata[model_type] = meta
                self._schemas.setdefault(meta.schema_name.lower(), model_type)
        return meta

    def register(self, model_type: type) -> None:
        """Record a model type and classify it if its annotations resolve.

        Types referring to classes that are not defined yet are classified
        on first use instead.
        """
        with self._lock:
            self._schemas[model_type.schema_name().lower()] = model_type
            localns = self._localns()
        try:
            typing.get_type_hints(model_type, localns=localns)
        except NameError as e:
            logger.debug(f"Deferring classification of {model_type.__name__}: {e}")
            return
        self.metadata_for(model_type)

    def lookup(self, schema_name: str) -> type | None:
        """Return the model type registered for a schema name."""
        return self._schemas.get(schema_name.lower())

    def schemas(self) -> list[str]:
        with self._lock:
            return sorted(self._schemas)

    def clear(self) -> None:
        with self._lock:
            self._metadata.clear()
            self._schemas.clear()


default_registry = Registry()
