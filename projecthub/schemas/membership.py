"""
Membership Schemas

Request/response models for project team operations.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from projecthub.models.membership import ProjectRole


class MembershipCreate(BaseModel):
    """
    Assign a user of the same company to a project.

    Fields are plain strings here; the service checks them after the
    project and the caller's rights on it are resolved.
    """
    user_id: Optional[str] = None
    role: Optional[str] = None


class MembershipUpdate(BaseModel):
    """Change the project role of an existing member."""
    role: Optional[str] = None


class MembershipResponse(BaseModel):
    """A single membership row."""
    id: str
    project_id: str
    user_id: str
    role: ProjectRole
    assigned_at: datetime

    class Config:
        from_attributes = True


class TeamMemberResponse(BaseModel):
    """A project team member as shown in team listings."""
    user_id: str
    email: str
    role: ProjectRole
    assigned_at: datetime
