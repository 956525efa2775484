"""
Project Team Endpoints

Assigning users to a project, changing their project role and removing
them. Only project owners and global admins may change a team, and only
with users of the project's own company.

A project always keeps at least one owner unless an admin says otherwise.
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status

from projecthub.api.deps import get_current_principal
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.schemas.membership import (
    MembershipCreate,
    MembershipResponse,
    MembershipUpdate,
    TeamMemberResponse,
)
from projecthub.services.project_service import ProjectService, get_project_service

router = APIRouter(prefix="/projects/{project_id}/members", tags=["members"])


@router.get("", response_model=List[TeamMemberResponse])
async def list_members(
    project_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Team members by role (owners first), then by assignment time."""
    return projects.list_team(principal, project_id)


@router.post("", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def assign_member(
    project_id: str,
    assignment: MembershipCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Assign a user to the project."""
    return projects.assign_member(principal, project_id, assignment.user_id, assignment.role)


@router.patch("/{user_id}", response_model=MembershipResponse)
async def change_member_role(
    project_id: str,
    user_id: str,
    update: MembershipUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Change a member's project role."""
    return projects.change_member_role(principal, project_id, user_id, update.role)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    project_id: str,
    user_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Remove a member from the project."""
    projects.remove_member(principal, project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
