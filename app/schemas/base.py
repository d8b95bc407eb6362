"""
Base schemas with shared configuration.
"""

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class CamelSchema(BaseModel):
    """
    Base for all request/response schemas.

    Fields are snake_case in Python and camelCase on the wire
    (``user_id`` <-> ``userId``). Either form is accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    @field_serializer("*")
    def serialize_enum(self, v):
        """Serialize enum fields to their string values."""
        if hasattr(v, "value"):
            return v.value
        return v
