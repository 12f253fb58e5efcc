"""
Base schemas used across the application.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """
    Wire models use camelCase keys (``affiliateCode``) while Python code uses
    snake_case attributes. Both spellings are accepted on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ResponseBase(CamelModel):
    """Base response envelope for API endpoints."""
    success: bool = True
    message: Optional[str] = None
