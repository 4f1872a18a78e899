"""nimbus_db: object mapping and query encoding for a schema-less object store."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "BinaryFile",
    "ClientConfig",
    "ConfigurationError",
    "Counter",
    "Datastore",
    "ForgotPasswordEmail",
    "GeoPoint",
    "Model",
    "ModelQuery",
    "NimbusError",
    "Query",
    "QueryField",
    "RequestOptions",
    "Selection",
    "TransportError",
    "UsageError",
    "fill_from",
    "model",
    "new_from_wire",
    "to_wire",
]

from nimbus_db.api import Datastore
from nimbus_db.config import ClientConfig
from nimbus_db.exceptions import ConfigurationError, NimbusError, TransportError, UsageError
from nimbus_db.models import BinaryFile, Counter, ForgotPasswordEmail, GeoPoint, Model, model
from nimbus_db.models.schemas import RequestOptions
from nimbus_db.query import ModelQuery, Query, QueryField
from nimbus_db.serialization import Selection, fill_from, new_from_wire, to_wire
