"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class CamelSchema(BaseSchema):
    """
    Schema exchanged with the dashboard frontend.

    Serialized with camelCase keys (sourcePaths, isVisible) and accepts
    either camelCase or snake_case on input. Strings are kept verbatim
    (notes and regex rules are whitespace-sensitive).
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=False,
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True
    )
