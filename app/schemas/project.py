"""
Project schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import Field

from .common import CamelModel


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    website_url: Optional[str] = None
    webhook_url: Optional[str] = None
    webhook_enabled: bool = False


class ProjectResponse(CamelModel):
    id: int
    user_id: str
    name: str
    website_url: Optional[str] = None
    webhook_url: Optional[str] = None
    webhook_enabled: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
