"""Pydantic base schema shared by all domain models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for all domain schemas.

    - ``populate_by_name=True``: allow initialization by alias or field name.
    - ``extra="forbid"``: reject unknown fields, so malformed planner output or
      stored records fail validation instead of being silently accepted.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )


class FrozenSchema(BaseSchema):
    """``BaseSchema`` variant for value objects that must not change after creation."""

    model_config = ConfigDict(frozen=True)
