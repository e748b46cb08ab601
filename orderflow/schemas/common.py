from typing import Any, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        use_enum_values = True
        coerce_numbers_to_str = True


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: Optional[str] = None
    field: Optional[str] = None
    details: Optional[List[str]] = None


def envelope(data: Any = None, **extra) -> dict:
    """Success envelope shared by every endpoint."""
    body = {"success": True, "data": data}
    body.update(extra)
    return body
