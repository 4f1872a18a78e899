"""Exception types raised by nimbus_db."""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "FieldDecodeError",
    "NimbusError",
    "TransportError",
    "UsageError",
]


class NimbusError(Exception):
    """Base class for all nimbus_db errors."""


class ConfigurationError(NimbusError):
    """Raised when a model cannot be serialized as declared.

    Covers invalid schema or field names, a field colliding with the
    reserved id field, nested composite objects and collections whose
    element type cannot be determined. These are never retried.

    Examples
    --------
    >>> try:
    ...     to_wire(BadModel())
    ... except ConfigurationError as e:
    ...     print(f"Model is misconfigured: {e}")
    """


class UsageError(NimbusError, ValueError):
    """Raised when a caller passes arguments that cannot be sent.

    Always raised before anything is handed to the transport.
    """


class FieldDecodeError(NimbusError):
    """Raised when a single incoming field cannot be decoded.

    The reconciler catches this, logs it and moves on to the next field.
    """

    def __init__(self, field: str, value, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot decode field {field!r} from {value!r}: {reason}")


class TransportError(NimbusError):
    """Raised when the transport reports a non-success status."""

    def __init__(self, verb: str, path: str, status: int, body: str | None = None):
        self.verb = verb
        self.path = path
        self.status = status
        self.body = body
        super().__init__(f"{verb} {path} failed with status {status}: {body}")
