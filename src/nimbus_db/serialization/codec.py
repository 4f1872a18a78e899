"""Closed table of value codecs for plain (non-model) field values.

Primitive, datetime, big number, UUID, bytes and Enum values, and
collections of them, are converted by an adaptix `Retort` configured
with an explicit recipe. Anything else has no wire form: serializing it
is a configuration error, decoding it is a per-field decode failure.

Examples
--------
>>> from datetime import datetime, timezone
>>> codec = ValueCodec()
>>> codec.dump(datetime(1970, 1, 1, 0, 0, 2, tzinfo=timezone.utc), datetime)
2000
>>> codec.load("raw", [104, 105], bytes)
b'hi'
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import UUID

from adaptix import DebugTrail, Retort, dumper, loader
from adaptix.load_error import LoadError, TypeLoadError, ValueLoadError

from nimbus_db.exceptions import ConfigurationError, FieldDecodeError
from nimbus_db.models.base import Model
from nimbus_db.utils.time import from_epoch_millis, to_epoch_millis

__all__ = ["SCALAR_TYPES", "ValueCodec", "default_codec"]

SCALAR_TYPES: tuple[type, ...] = (str, int, float, bool, datetime, UUID, Decimal, bytes)


def _load_int(data: Any) -> int:
    if isinstance(data, bool):
        raise TypeLoadError(expected_type=int, input_value=data)
    if isinstance(data, int):
        return data
    if isinstance(data, float) and data.is_integer():
        return int(data)
    raise TypeLoadError(expected_type=int, input_value=data)


def _load_float(data: Any) -> float:
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return float(data)
    raise TypeLoadError(expected_type=float, input_value=data)


def _load_bool(data: Any) -> bool:
    if isinstance(data, bool):
        return data
    raise TypeLoadError(expected_type=bool, input_value=data)


def _load_str(data: Any) -> str:
    if isinstance(data, str):
        return data
    raise TypeLoadError(expected_type=str, input_value=data)


def _load_datetime(data: Any) -> datetime:
    try:
        return from_epoch_millis(data)
    except (TypeError, OverflowError) as e:
        raise ValueLoadError(msg=str(e), input_value=data) from e


def _load_decimal(data: Any) -> Decimal:
    if isinstance(data, bool) or not isinstance(data, (int, float, str)):
        raise TypeLoadError(expected_type=Decimal, input_value=data)
    try:
        return Decimal(str(data))
    except InvalidOperation as e:
        raise ValueLoadError(msg="not a decimal number", input_value=data) from e


def _load_bytes(data: Any) -> bytes:
    if not isinstance(data, list):
        raise TypeLoadError(expected_type=bytes, input_value=data)
    try:
        return bytes(data)
    except (TypeError, ValueError) as e:
        raise ValueLoadError(msg=str(e), input_value=data) from e


_retort = Retort(
    debug_trail=DebugTrail.DISABLE,
    recipe=[
        loader(bool, _load_bool),
        loader(int, _load_int),
        loader(float, _load_float),
        loader(str, _load_str),
        loader(datetime, _load_datetime),
        dumper(datetime, to_epoch_millis),
        loader(Decimal, _load_decimal),
        dumper(Decimal, str),
        loader(bytes, _load_bytes),
        dumper(bytes, list),
    ],
)


def _is_composite(value: Any) -> bool:
    return isinstance(value, (dict, Model)) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    )


class ValueCodec:
    """Encode and decode plain field values through the codec table.

    Parameters
    ----------
    retort : Retort, optional
        Retort to use instead of the module default
    """

    def __init__(self, retort: Retort | None = None):
        self._retort = retort or _retort

    @staticmethod
    def supports(tp: Any) -> bool:
        """Whether ``tp`` has an entry in the codec table."""
        if not isinstance(tp, type):
            return False
        return tp in SCALAR_TYPES or issubclass(tp, Enum)

    def dump(self, value: Any, tp: Any, field: str = "?") -> Any:
        """
        Encode a single value declared as ``tp``.

        Raises
        ------
        ConfigurationError
            If the value is a composite object or ``tp`` has no codec
        """
        if _is_composite(value):
            raise ConfigurationError(
                f"Field {field!r} holds a nested {type(value).__name__} object; "
                "only models may be nested"
            )
        if not self.supports(tp):
            raise ConfigurationError(
                f"Field {field!r} has type {tp!r} which cannot be sent"
            )
        result = self._retort.dump(value, tp)
        if isinstance(result, dict):
            raise ConfigurationError(f"Field {field!r} encodes to a JSON object")
        return result

    def dump_many(self, values, element_type: Any, field: str = "?") -> list:
        """Encode the elements of a collection.

        Without an element type, each element is encoded by its runtime
        type.
        """
        out = []
        for value in values:
            if element_type is None and isinstance(value, Model):
                raise ConfigurationError(
                    f"Field {field!r} holds models but does not declare its element type"
                )
            tp = element_type if element_type is not None else type(value)
            out.append(self.dump(value, tp, field))
        return out

    def load(self, field: str, data: Any, tp: Any) -> Any:
        """
        Decode ``data`` as ``tp``.

        Raises
        ------
        FieldDecodeError
            If ``tp`` has no codec or ``data`` does not match it
        """
        if not self.supports(tp):
            raise FieldDecodeError(field, data, f"no codec for {tp!r}")
        try:
            return self._retort.load(data, tp)
        except (LoadError, TypeError, ValueError) as e:
            raise FieldDecodeError(field, data, repr(e)) from e

    def load_many(
        self, field: str, data: Any, element_type: Any, container: type | None
    ) -> Any:
        """Decode a JSON array into ``container`` of ``element_type``."""
        if not isinstance(data, list):
            raise FieldDecodeError(field, data, "expected an array")
        if element_type is None:
            items = [
                item for item in data if item is None or not isinstance(item, (dict, list))
            ]
            if len(items) != len(data):
                raise FieldDecodeError(field, data, "array holds nested values")
        else:
            items = [self.load(field, item, element_type) for item in data]
        return (container or list)(items)


default_codec = ValueCodec()
