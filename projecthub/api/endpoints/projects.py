"""
Project Endpoints

CRUD operations for projects within the caller's company.

RBAC:
- Create project: Global admin (becomes the project's owner)
- List projects: Admins see every company project, others their own
- View project: Any project member or admin
- Update project: Owner, developer or admin
- Delete project: Owner or admin (memberships are deleted with it)
"""
from typing import List

from fastapi import APIRouter, Depends, Response, status

from projecthub.api.deps import get_current_principal
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.schemas.project import (
    ProjectCreate,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdate,
)
from projecthub.services.project_service import ProjectService, get_project_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=List[ProjectSummaryResponse])
async def list_projects(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """List visible projects, newest first, with team size and own role."""
    return projects.list_projects(principal)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """
    Create a new project.

    The project and the creator's owner membership are created together.
    """
    return projects.create_project(principal, project_data)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Get a project with its team."""
    return projects.get_project(principal, project_id)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Update project name and/or description."""
    return projects.update_project(principal, project_id, project_data)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    projects: ProjectService = Depends(get_project_service)
):
    """Permanently delete a project and all of its memberships."""
    projects.delete_project(principal, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
