"""Model declaration, field classification and special field types."""

from __future__ import annotations

__all__ = [
    "BinaryFile",
    "Counter",
    "FieldInfo",
    "ForgotPasswordEmail",
    "GeoPoint",
    "Model",
    "ModelState",
    "Registry",
    "TypeMetadata",
    "classify",
    "default_registry",
    "model",
    "new_instance",
]

from .base import Model, ModelState, model, new_instance
from .metadata import FieldInfo, Registry, TypeMetadata, classify, default_registry
from .types import BinaryFile, Counter, ForgotPasswordEmail, GeoPoint
