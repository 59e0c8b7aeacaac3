"""
Common Pydantic schemas
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from app.utils.clock import to_naive_utc

class CamelModel(BaseModel):
    """Base schema exposing camelCase JSON keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

    @field_validator("*")
    @classmethod
    def normalize_datetimes(cls, value):
        # Columns hold naive UTC
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

class UserSummary(CamelModel):
    """Buyer as shown to organizers"""
    id: int
    name: str
    email: str
