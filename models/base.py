"""
Base schemas for all models.
"""

from pydantic import BaseModel, ConfigDict


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


class WireSchema(BaseSchema):
    """
    Base for records exchanged with the inventory backend.

    The backend speaks camelCase (and a few PascalCase) field names; models
    declare them as aliases and accept either spelling on input.
    """
    model_config = ConfigDict(
        populate_by_name=True
    )
