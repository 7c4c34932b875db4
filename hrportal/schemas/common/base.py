"""
Base schema classes with common configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

__all__ = ["BaseSchema", "BaseCommandSchema", "BaseResponseSchema"]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    Enums stay Enum instances; callers read ``.value`` when they need the string.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=False,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseCommandSchema(BaseSchema):
    """Input to an engine operation; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class BaseResponseSchema(BaseSchema):
    """Read model returned from an engine operation."""
