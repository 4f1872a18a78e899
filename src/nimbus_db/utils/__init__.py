"""Utility functions for nimbus_db."""

from __future__ import annotations

__all__ = [
    "from_epoch_millis",
    "new_object_id",
    "to_epoch_millis",
]

from .time import from_epoch_millis, to_epoch_millis
from .uid import new_object_id
