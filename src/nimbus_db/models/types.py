"""Special field value types with their own wire encodings.

A model field declared with one of these types gets a dedicated
`~nimbus_db.constants.FieldKind` instead of going through the generic
codec table.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

from nimbus_db.constants import (
    EARTH_RADIUS_KM,
    EARTH_RADIUS_MI,
    CounterMode,
)

__all__ = [
    "BinaryFile",
    "Counter",
    "ForgotPasswordEmail",
    "GeoPoint",
]


class Counter:
    """Numeric field updated atomically on the server.

    The counter remembers the last committed ``value`` and a pending delta.
    In ``INCREMENT`` mode a save sends ``field[inc] = delta`` so concurrent
    clients do not overwrite each other; after `force_to` a save sends the
    absolute value instead.

    Examples
    --------
    >>> c = Counter()
    >>> c.update_by(3)
    >>> c.get(), c.pending_delta, c.mode.value
    (0, 3, 'increment')
    >>> c.force_to(5)
    >>> c.update_by(1)
    >>> c.outgoing_value()
    6
    """

    __slots__ = ("value", "pending_delta", "mode")

    def __init__(self, value: int | float = 0):
        self.value = value
        self.pending_delta: int | float = 0
        self.mode = CounterMode.INCREMENT

    def __repr__(self) -> str:
        return (
            f"Counter(value={self.value!r}, pending_delta={self.pending_delta!r}, "
            f"mode={self.mode.value})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Counter):
            return NotImplemented
        return (self.value, self.pending_delta, self.mode) == (
            other.value,
            other.pending_delta,
            other.mode,
        )

    __hash__ = None  # mutable

    def get(self) -> int | float:
        """Return the last committed value, never including pending deltas."""
        return self.value

    def force_to(self, value: int | float) -> None:
        """Overwrite the value on the next save."""
        self.mode = CounterMode.SET
        self.value = value
        self.pending_delta = 0

    def update_by(self, delta: int | float) -> None:
        """Add ``delta`` on the next save.

        A forced value that has not been sent yet stays forced; the delta is
        sent on top of it.
        """
        self.pending_delta += delta
        if self.mode is not CounterMode.SET:
            self.mode = CounterMode.INCREMENT

    @property
    def is_dirty(self) -> bool:
        return self.mode is CounterMode.SET or self.pending_delta != 0

    def outgoing_value(self) -> int | float:
        """Value to write for the current mode, without draining."""
        if self.mode is CounterMode.SET:
            return self.value + self.pending_delta
        return self.pending_delta

    def drain(self) -> None:
        """Fold the pending delta into the local value after it was sent."""
        self.value += self.pending_delta
        self.pending_delta = 0
        self.mode = CounterMode.INCREMENT

    def commit(self, value: int | float) -> None:
        """Take a value reported by the server; pending deltas are kept."""
        self.value = value


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in degrees.

    Examples
    --------
    >>> GeoPoint(10.0, 20.0).to_wire()
    {'lat': 10.0, 'lon': 20.0}
    """

    lat: float
    lon: float

    def to_wire(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_wire(cls, value: Any) -> GeoPoint:
        if isinstance(value, dict):
            return cls(float(value["lat"]), float(value["lon"]))
        if isinstance(value, (list, tuple)) and len(value) == 2:
            return cls(float(value[0]), float(value[1]))
        raise ValueError(f"Not a geo point: {value!r}")

    def query_string(self) -> str:
        return f"{self.lat},{self.lon}"

    @staticmethod
    def miles_to_radians(miles: float) -> float:
        return miles / EARTH_RADIUS_MI

    @staticmethod
    def km_to_radians(km: float) -> float:
        return km / EARTH_RADIUS_KM


@dataclass
class BinaryFile:
    """A file attached to a model.

    Local bytes are uploaded on save and replaced by the URL the server
    stores them under. A file read back from the server only has
    ``remote_url``.

    Parameters
    ----------
    content_type : str
        MIME type, e.g. ``image/png``
    file_name : str
        Name used in the content disposition
    payload : bytes, optional
        Local content waiting to be uploaded
    remote_url : str, optional
        Where the server stores the file
    """

    content_type: str | None = None
    file_name: str | None = None
    payload: bytes | None = None
    remote_url: str | None = None

    @classmethod
    def from_url(cls, url: str) -> BinaryFile:
        return cls(remote_url=url)

    @property
    def has_local_data(self) -> bool:
        return self.payload is not None

    def to_wire(self) -> str:
        """Encode the local payload as a MIME-style base64 string.

        Examples
        --------
        >>> BinaryFile("text/plain", "a.txt", b"hi").to_wire()
        'Content-Type: text/plain\\nContent-Disposition: attachment; filename=a.txt\\nContent-Transfer-Encoding: base64\\n\\naGk='
        """
        if self.payload is None:
            raise ValueError("BinaryFile has no local payload")
        encoded = base64.b64encode(self.payload).decode("ascii")
        return (
            f"Content-Type: {self.content_type}\n"
            f"Content-Disposition: attachment; filename={self.file_name}\n"
            "Content-Transfer-Encoding: base64\n\n"
            f"{encoded}"
        )


@dataclass(frozen=True)
class ForgotPasswordEmail:
    """Email address used by the password reset flow."""

    email: str = field(default="")

    def __str__(self) -> str:
        return self.email
