"""Object id generation."""

from __future__ import annotations

import uuid

__all__ = ["new_object_id"]


def new_object_id() -> str:
    """
    Generate an opaque id for an object that has never been saved.

    Returns
    -------
    str
        32 character lowercase hex string

    Examples
    --------
    >>> len(new_object_id())
    32
    """
    return uuid.uuid4().hex
