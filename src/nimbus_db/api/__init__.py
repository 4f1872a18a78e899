"""Request level operations built on a pluggable transport."""

from __future__ import annotations

__all__ = ["Datastore", "Transport", "TransportResponse"]

from .datastore import Datastore, Transport, TransportResponse
