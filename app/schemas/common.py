"""
Common Pydantic schemas shared by every endpoint.
"""
from datetime import datetime
from typing import Generic, TypeVar, Optional, Any, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.utils.dates import ensure_aware


T = TypeVar('T')


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("*")
    @classmethod
    def _utc_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return ensure_aware(value)
        return value


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every API response."""
    success: bool = Field(..., description="Whether the request was successful")
    data: Optional[T] = Field(None, description="Response data")
    error: Optional[str] = Field(None, description="Error message when success is false")
    message: Optional[str] = Field(None, description="Optional human readable note")


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str = Field(..., description="Response message")


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Environment name")


class DetailedHealthCheck(HealthCheck):
    """Detailed health check with service statuses."""
    services: Dict[str, Dict[str, Any]] = Field(..., description="Service health status")
