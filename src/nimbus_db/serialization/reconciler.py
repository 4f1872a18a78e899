"""Merge wire JSON into an existing model graph.

Filling is best effort: a field that cannot be decoded is logged and
skipped, the rest of the object is still applied. Nested models are
reused whenever the incoming id matches, so references held by the
application stay valid across fetches.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableSequence, MutableSet
from typing import Any, TypeVar

from loguru import logger

from nimbus_db.constants import FieldKind
from nimbus_db.exceptions import FieldDecodeError
from nimbus_db.models.base import Model, new_instance
from nimbus_db.models.metadata import FieldInfo, Registry, TypeMetadata, default_registry
from nimbus_db.models.types import BinaryFile, Counter, ForgotPasswordEmail, GeoPoint
from nimbus_db.serialization.codec import ValueCodec, default_codec
from nimbus_db.serialization.selection import Selection

__all__ = [
    "Reconciler",
    "fill_from",
    "find_existing",
    "new_from_wire",
    "update_model_list",
]

M = TypeVar("M", bound=Model)


def _wire_id(wire_value: Any, id_field: str) -> str | None:
    if isinstance(wire_value, dict):
        value = wire_value.get(id_field)
    else:
        value = wire_value
    return None if value is None else str(value)


def find_existing(candidates: Iterable[Model], wire_value: Any) -> Model | None:
    """Return the candidate with the same id as ``wire_value``, if any."""
    for candidate in candidates:
        if candidate is not None and candidate.has_same_id(wire_value):
            return candidate
    return None


class Reconciler:
    """Applies server responses to model instances.

    Parameters
    ----------
    registry : Registry, optional
        Metadata registry, the default registry when omitted
    codec : ValueCodec, optional
        Codec for plain values
    """

    def __init__(self, registry: Registry | None = None, codec: ValueCodec | None = None):
        self.registry = registry or default_registry
        self.codec = codec or default_codec

    def fill_from(
        self,
        instance: M,
        wire_value: Any,
        selection: Selection | Iterable[str] | None = None,
    ) -> M:
        """
        Merge ``wire_value`` into ``instance``.

        Parameters
        ----------
        instance : Model
            Object to update in place
        wire_value : Any
            A JSON object, or a bare id for a relation that was not expanded
        selection : Selection or iterable of str, optional
            Only selected keys are applied; binary fields always are

        Returns
        -------
        Model
            ``instance``
        """
        meta = self.registry.metadata_for(type(instance))
        if not isinstance(wire_value, dict):
            if isinstance(wire_value, (str, int)) and not isinstance(wire_value, bool):
                instance.id = str(wire_value)
            elif wire_value is not None:
                logger.warning(
                    f"Ignoring {type(wire_value).__name__} value for {meta.schema_name!r}; "
                    "expected an object or an id"
                )
            return instance
        selection = Selection.coerce(selection)
        for key, value in wire_value.items():
            if key.lower() == meta.id_field_name.lower():
                instance.id = None if value is None else str(value)
                continue
            info = meta.resolve(key)
            if info is None:
                logger.debug(
                    f"Ignoring unknown field {key!r} for schema {meta.schema_name!r}"
                )
                continue
            if info.kind is not FieldKind.BINARY and not selection.is_selected(info.name):
                continue
            try:
                self._apply(instance, info, value, selection)
            except FieldDecodeError as e:
                logger.warning(f"Skipping {meta.schema_name}.{info.name}: {e}")
        instance.model_state.has_data = True
        return instance

    def new_from_wire(self, model_type: type[M], wire_value: Any) -> M:
        """Build a fresh instance of ``model_type`` and fill it."""
        return self.fill_from(new_instance(model_type), wire_value)

    def _apply(
        self, instance: Model, info: FieldInfo, value: Any, selection: Selection
    ) -> None:
        current = getattr(instance, info.name, None)
        kind = info.kind
        if value is None:
            if kind is FieldKind.COUNTER and isinstance(current, Counter):
                return
            setattr(instance, info.name, None)
            return
        if kind is FieldKind.MODEL:
            setattr(
                instance,
                info.name,
                self._reconcile_model(
                    info.declared_type, current, value, selection.sub_selection(info.name)
                ),
            )
        elif kind is FieldKind.MODEL_ARRAY:
            setattr(
                instance,
                info.name,
                self.update_model_list(info, current, value, selection.sub_selection(info.name)),
            )
        elif kind is FieldKind.COUNTER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise FieldDecodeError(info.name, value, "counter values must be numbers")
            if isinstance(current, Counter):
                current.commit(value)
            else:
                setattr(instance, info.name, Counter(value))
        elif kind is FieldKind.BINARY:
            if not isinstance(value, str):
                raise FieldDecodeError(info.name, value, "expected a url")
            if isinstance(current, BinaryFile):
                current.remote_url = value
            else:
                setattr(instance, info.name, BinaryFile.from_url(value))
        elif kind is FieldKind.GEOPOINT:
            try:
                setattr(instance, info.name, GeoPoint.from_wire(value))
            except (KeyError, TypeError, ValueError) as e:
                raise FieldDecodeError(info.name, value, str(e)) from e
        elif kind is FieldKind.FORGOT_PASSWORD:
            if not isinstance(value, str):
                raise FieldDecodeError(info.name, value, "expected an email address")
            setattr(instance, info.name, ForgotPasswordEmail(value))
        elif kind in (FieldKind.PRIMITIVE_ARRAY, FieldKind.OBJECT_ARRAY):
            setattr(
                instance,
                info.name,
                self.codec.load_many(info.name, value, info.element_type, info.container_type),
            )
        else:
            setattr(instance, info.name, self.codec.load(info.name, value, info.declared_type))

    def _reconcile_model(
        self, model_type: type[Model], current: Model | None, value: Any, selection: Selection
    ) -> Model:
        if isinstance(value, (list, bool)) or not isinstance(value, (dict, str, int)):
            raise FieldDecodeError(model_type.schema_name(), value, "expected an object or id")
        target = current
        if target is None or not target.has_same_id(value):
            target = new_instance(model_type)
        if isinstance(value, dict):
            return self.fill_from(target, value, selection)
        target.id = str(value)
        return target

    def update_model_list(
        self,
        info: FieldInfo,
        current: Any,
        values: Any,
        selection: Selection | None = None,
    ) -> Any:
        """
        Reconcile a JSON array into a collection of models.

        Incoming elements are first matched to existing elements by id. An
        unmatched element then takes over an existing element that has no id
        yet, and anything left is constructed new. A mutable existing
        container is updated in place.

        Returns
        -------
        collection
            The updated container, or a new one of the declared kind
        """
        if not isinstance(values, list):
            raise FieldDecodeError(info.name, values, "expected an array")
        selection = selection or Selection.all()
        model_type = info.element_type
        meta: TypeMetadata = self.registry.metadata_for(model_type)
        existing = [e for e in (current or ()) if isinstance(e, Model)]
        claimed: set[int] = set()
        matched: list[Model | None] = []
        for value in values:
            found = find_existing((e for e in existing if id(e) not in claimed), value)
            if found is not None:
                claimed.add(id(found))
            matched.append(found)
        result: list[Model] = []
        for value, found in zip(values, matched):
            if found is None:
                found = next(
                    (e for e in existing if e.id is None and id(e) not in claimed), None
                )
                if found is not None:
                    claimed.add(id(found))
                    found.id = _wire_id(value, meta.id_field_name)
                else:
                    found = new_instance(model_type)
            if isinstance(value, dict):
                self.fill_from(found, value, selection)
            elif value is not None:
                found.id = str(value)
            result.append(found)
        if isinstance(current, MutableSequence):
            current[:] = result
            return current
        if isinstance(current, MutableSet):
            current.clear()
            current.update(result)
            return current
        container = info.container_type or list
        return container(result)


_default_reconciler = Reconciler()


def fill_from(
    instance: M, wire_value: Any, selection: Selection | Iterable[str] | None = None
) -> M:
    """Fill with the default registry; see `Reconciler.fill_from`."""
    return _default_reconciler.fill_from(instance, wire_value, selection)


def new_from_wire(model_type: type[M], wire_value: Any) -> M:
    """Build and fill with the default registry."""
    return _default_reconciler.new_from_wire(model_type, wire_value)


def update_model_list(
    info: FieldInfo, current: Any, values: Any, selection: Selection | None = None
) -> Any:
    """See `Reconciler.update_model_list`."""
    return _default_reconciler.update_model_list(info, current, values, selection)
