"""Client configuration.

Header names and naming limits live here so that a deployment talking to a
differently branded server only needs a different ``header_prefix``.

Examples
--------
>>> config = ClientConfig()
>>> config.relations_header
'X-Nimbus-Relations'
>>> ClientConfig(header_prefix="X-Acme").select_header
'X-Acme-Select'
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from nimbus_db.constants import MAX_EXPAND_DEPTH, NAME_MAX_LENGTH, NAME_MIN_LENGTH

__all__ = ["ClientConfig", "default_config"]


class ClientConfig(BaseModel):
    """Settings shared by the serializer and the datastore."""

    model_config = ConfigDict(frozen=True)

    header_prefix: str = Field(
        "X-Nimbus",
        min_length=1,
        description="Prefix for all vendor request headers",
    )
    max_expand_depth: int = Field(
        MAX_EXPAND_DEPTH,
        ge=0,
        description="Largest relation expansion depth the server accepts",
    )
    save_response_fields: tuple[str, ...] = Field(
        ("createddate", "lastmoddate"),
        description="Fields refreshed from the server response after a save",
    )
    name_min_length: int = Field(NAME_MIN_LENGTH, ge=1)
    name_max_length: int = Field(NAME_MAX_LENGTH, ge=1)

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from ``NIMBUS_*`` environment variables."""
        overrides = {}
        prefix = os.getenv("NIMBUS_HEADER_PREFIX")
        if prefix:
            overrides["header_prefix"] = prefix
        depth = os.getenv("NIMBUS_MAX_EXPAND_DEPTH")
        if depth:
            overrides["max_expand_depth"] = int(depth)
        return cls(**overrides)

    @property
    def relations_header(self) -> str:
        return f"{self.header_prefix}-Relations"

    @property
    def field_types_header(self) -> str:
        return f"{self.header_prefix}-FieldTypes"

    @property
    def select_header(self) -> str:
        return f"{self.header_prefix}-Select"

    @property
    def expand_header(self) -> str:
        return f"{self.header_prefix}-Expand"

    @property
    def order_by_header(self) -> str:
        return f"{self.header_prefix}-OrderBy"

    @property
    def cascade_delete_header(self) -> str:
        return f"{self.header_prefix}-CascadeDelete"


default_config = ClientConfig()
