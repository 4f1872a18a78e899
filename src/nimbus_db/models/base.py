"""Model capability mixin and the ``@model`` class decorator.

A model is a dataclass that also derives from `Model`. The dataclass
fields are the persisted fields; identity and load state live in a
`ModelState` kept outside the dataclass field list, so equality and
``repr`` only ever see user data.

Examples
--------
>>> @model(schema="book")
... class Book(Model):
...     title: str | None = None
...     pages: int = 0
>>> b = Book(title="Dune")
>>> b.id is None, b.has_data
(True, False)
>>> Book.id_field_name()
'book_id'
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from nimbus_db.constants import ID_FIELD_SUFFIX

if TYPE_CHECKING:
    from nimbus_db.models.metadata import Registry

__all__ = ["Model", "ModelState", "model", "new_instance"]

M = TypeVar("M", bound="Model")

_STATE_KEY = "_nimbus_state"


@dataclass
class ModelState:
    """Identity and load state of one model instance.

    Attributes
    ----------
    id : str, optional
        Primary key; assigned on first serialization when missing
    has_data : bool
        True once a server response populated the instance
    """

    id: str | None = None
    has_data: bool = False


class Model:
    """Capability root for persisted types.

    Subclasses set ``__schema_name__`` to override the schema name, which
    otherwise is the lowercased class name.
    """

    __schema_name__: ClassVar[str | None] = None

    @property
    def model_state(self) -> ModelState:
        state = self.__dict__.get(_STATE_KEY)
        if state is None:
            state = ModelState()
            object.__setattr__(self, _STATE_KEY, state)
        return state

    @property
    def id(self) -> str | None:
        return self.model_state.id

    @id.setter
    def id(self, value: str | None) -> None:
        self.model_state.id = value

    @property
    def has_data(self) -> bool:
        """False for stubs that only carry an id."""
        return self.model_state.has_data

    @classmethod
    def schema_name(cls) -> str:
        return cls.__dict__.get("__schema_name__") or cls.__name__.lower()

    @classmethod
    def id_field_name(cls) -> str:
        return cls.schema_name() + ID_FIELD_SUFFIX

    @classmethod
    def from_id(cls: type[M], id: str) -> M:
        """Create a stub referencing an existing object."""
        obj = new_instance(cls)
        obj.id = id
        return obj

    def has_same_id(self, wire_value: Any) -> bool:
        """Check whether a wire value refers to this object.

        ``wire_value`` is either a bare id or an object carrying the id
        under the id field name.
        """
        if self.id is None:
            return False
        if isinstance(wire_value, dict):
            incoming = wire_value.get(self.id_field_name())
        else:
            incoming = wire_value
        return incoming is not None and str(incoming) == self.id


def new_instance(model_type: type[M]) -> M:
    """
    Construct a model without calling its ``__init__``.

    Every dataclass field gets its default, the result of its default
    factory, or None.

    Parameters
    ----------
    model_type : type[Model]
        Dataclass model type

    Returns
    -------
    Model
        Fresh instance with ``has_data == False``
    """
    obj = model_type.__new__(model_type)
    if dataclasses.is_dataclass(model_type):
        for f in dataclasses.fields(model_type):
            if f.default is not dataclasses.MISSING:
                value = f.default
            elif f.default_factory is not dataclasses.MISSING:
                value = f.default_factory()
            else:
                value = None
            object.__setattr__(obj, f.name, value)
    return obj


def model(
    cls: type[M] | None = None,
    /,
    *,
    schema: str | None = None,
    registry: Registry | None = None,
):
    """
    Class decorator declaring a persisted model type.

    Turns the class into a dataclass unless it already is one, records its
    schema name and registers it with ``registry`` (the default registry
    when omitted).

    Parameters
    ----------
    cls : type
        Class deriving from `Model`
    schema : str, optional
        Schema name; defaults to the lowercased class name
    registry : Registry, optional
        Registry to register with

    Raises
    ------
    TypeError
        If the class does not derive from `Model`
    """

    def wrap(cls: type[M]) -> type[M]:
        from nimbus_db.models.metadata import default_registry

        if not issubclass(cls, Model):
            raise TypeError(f"{cls.__name__} must derive from Model")
        if schema is not None:
            cls.__schema_name__ = schema
        if "__dataclass_fields__" not in cls.__dict__:
            cls = dataclass(cls)
        (registry or default_registry).register(cls)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)
