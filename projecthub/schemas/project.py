"""
Project Schemas

Request/response models for project operations.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from projecthub.models.membership import ProjectRole
from projecthub.schemas.membership import TeamMemberResponse


def clean_project_name(value: Optional[str]) -> Optional[str]:
    """Trimmed project name; ValueError if blank or longer than 255."""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Project name cannot be empty")
    if len(value) > 255:
        raise ValueError("Project name must be 255 characters or less")
    return value


class ProjectCreate(BaseModel):
    """Schema for creating a project."""
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return clean_project_name(value)

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class ProjectUpdate(BaseModel):
    """
    Schema for updating a project.

    Both fields optional, but at least one must be sent. An explicit null
    description clears it. The name is checked by the service once the
    caller is known to be allowed to update the project.
    """
    name: Optional[str] = None
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    """Project response schema."""
    id: str
    name: str
    description: Optional[str]
    tenant_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectSummaryResponse(ProjectResponse):
    """Project list item with team size and the caller's own role."""
    team_member_count: int
    user_role: Optional[ProjectRole] = None


class ProjectDetailResponse(ProjectResponse):
    """Project with its ordered team and what the caller may do with it."""
    team_members: list[TeamMemberResponse] = Field(default_factory=list)
    can_edit: bool = False
    can_manage_team: bool = False
