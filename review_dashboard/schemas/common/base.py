"""
Base schema classes with common configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseResponseSchema",
    "BaseFilterSchema",
]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    Fields are snake_case in Python and camelCase on the wire; input is
    accepted in either form.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=False,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class BaseCreateSchema(BaseSchema):
    """Base schema for request bodies."""
    pass


class BaseResponseSchema(BaseSchema):
    """Base schema for API responses."""
    pass


class BaseFilterSchema(BaseSchema):
    """Base schema for filter parameters."""
    pass
