"""Type definitions shared by the connector modules.

The persistence framework hands filters over in its wire shape
(``{"where": {...}, "orderBy": "field"}``); ``Filter`` normalizes that into
a validated model so the rest of the connector never touches raw dicts.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A document as returned to callers: stored fields plus the synthetic ``id``.
Document = dict[str, Any]

ID_FIELD = "id"


class Filter(BaseModel):
    """Abstract query filter: equality conditions plus optional ordering."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    where: dict[str, Any] = Field(default_factory=dict)
    order_by: str | None = Field(default=None, alias="orderBy")

    @field_validator("where", mode="before")
    @classmethod
    def _malformed_where_is_empty(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return {}
        return {str(key): item for key, item in value.items()}

    @field_validator("order_by", mode="before")
    @classmethod
    def _malformed_order_is_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) and value else None

    @classmethod
    def coerce(cls, value: Filter | Mapping[str, Any] | None) -> Filter:
        """Build a Filter from a Filter, a wire-shaped mapping, or None.

        Malformed input never raises: a non-mapping ``where`` means no
        conditions and a non-string ``orderBy`` means no ordering.
        """
        if isinstance(value, Filter):
            return value
        if not isinstance(value, Mapping):
            return cls()
        return cls.model_validate(dict(value))

    @property
    def document_id(self) -> Any | None:
        """Identity for a point lookup, or None when the filter is a query."""
        return self.where.get(ID_FIELD) or None

    @property
    def is_empty(self) -> bool:
        """True when the filter neither constrains nor orders."""
        return not self.where and not self.order_by


class ConnectionTestResult(BaseModel):
    """Result of testing a connection."""

    model_config = ConfigDict(frozen=True)

    success: bool
    latency_ms: int | None = None
    server_version: str | None = None
    message: str
    error_code: str | None = None
