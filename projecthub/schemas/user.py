"""
User Schemas

Response models for user listings. Password hashes never leave the
service.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from projecthub.models.user import GlobalRole


class UserResponse(BaseModel):
    """User response schema (excludes sensitive data)."""
    id: str
    email: str
    role: Optional[GlobalRole]
    tenant_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
