"""
Project Service

Project and team operations. Each public method runs the same gate
sequence before touching data:

    load_project (id shape, existence, tenant match)
        -> require_project_role
            -> the operation itself

Role requirements per action:

    create project                    global admin
    read project, list team           any project role, or admin
    update project                    owner, developer, or admin
    delete project                    owner or admin
    assign / change role / remove     owner or admin
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from projecthub.core.exceptions import ValidationError
from projecthub.core.memberships import MembershipStore
from projecthub.core.permissions import (
    is_owner_developer_or_admin,
    is_owner_or_admin,
    require_global_role,
    require_project_role,
)
from projecthub.core.tenancy import load_project
from projecthub.database import get_db
from projecthub.models.membership import ProjectMembership, ProjectRole
from projecthub.models.project import Project
from projecthub.models.user import GlobalRole
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.schemas.membership import TeamMemberResponse
from projecthub.schemas.project import (
    ProjectCreate,
    ProjectDetailResponse,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdate,
    clean_project_name,
)
from projecthub.utils.logging import get_logger

logger = get_logger(__name__)

ANY_PROJECT_ROLE = [ProjectRole.OWNER, ProjectRole.DEVELOPER, ProjectRole.VIEWER]


def parse_project_role(value: Optional[str]) -> ProjectRole:
    """Project role from request input; ValidationError if absent or unknown."""
    if value is None:
        raise ValidationError("role: Field required", reason="missing_field")
    try:
        return ProjectRole(value)
    except ValueError:
        allowed = ", ".join(role.value for role in ProjectRole)
        raise ValidationError(f"Invalid role. Must be one of: {allowed}", reason="invalid_enum_value")


class ProjectService:
    def __init__(self, session: Session):
        self.session = session
        self.memberships = MembershipStore(session)

    def _require_owner(self, project: Project, principal: AuthenticatedPrincipal, action: str) -> None:
        require_project_role(
            self.session, principal, project.id, [ProjectRole.OWNER],
            detail=f"Access denied: Only project owners or admins can {action}"
        )

    def create_project(self, principal: AuthenticatedPrincipal, data: ProjectCreate) -> Project:
        """
        Create a project with the creator as its owner.

        Project and owner membership are committed together or not at all.
        """
        require_global_role(principal, [GlobalRole.ADMIN])

        try:
            project = Project(
                tenant_id=principal.tenant_id,
                name=data.name,
                description=data.description,
            )
            self.session.add(project)
            self.session.flush()

            self.session.add(ProjectMembership(
                project_id=project.id,
                user_id=principal.id,
                role=ProjectRole.OWNER,
            ))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(project)
        logger.info(f"Project created: {project.id} by {principal.id}")
        return project

    def list_projects(self, principal: AuthenticatedPrincipal) -> list[ProjectSummaryResponse]:
        """
        Projects visible to the principal, newest first.

        Admins see all projects of their company, everyone else only the
        projects they are a member of.
        """
        query = self.session.query(Project).filter(Project.tenant_id == principal.tenant_id)
        if not principal.is_admin:
            query = query.join(
                ProjectMembership,
                ProjectMembership.project_id == Project.id
            ).filter(ProjectMembership.user_id == principal.id)

        projects = query.order_by(Project.created_at.desc()).all()
        if not projects:
            return []

        project_ids = [project.id for project in projects]
        team_counts = dict(
            self.session.query(ProjectMembership.project_id, func.count(ProjectMembership.id))
            .filter(ProjectMembership.project_id.in_(project_ids))
            .group_by(ProjectMembership.project_id)
            .all()
        )
        own_roles = dict(
            self.session.query(ProjectMembership.project_id, ProjectMembership.role)
            .filter(
                ProjectMembership.project_id.in_(project_ids),
                ProjectMembership.user_id == principal.id
            )
            .all()
        )

        return [
            ProjectSummaryResponse(
                **ProjectResponse.model_validate(project).model_dump(),
                team_member_count=team_counts.get(project.id, 0),
                user_role=own_roles.get(project.id),
            )
            for project in projects
        ]

    def get_project(self, principal: AuthenticatedPrincipal, project_id: str) -> ProjectDetailResponse:
        project = load_project(self.session, principal, project_id)
        require_project_role(self.session, principal, project.id, ANY_PROJECT_ROLE)

        return ProjectDetailResponse(
            **ProjectResponse.model_validate(project).model_dump(),
            team_members=self._team(project.id),
            can_edit=is_owner_developer_or_admin(self.session, project.id, principal.id),
            can_manage_team=is_owner_or_admin(self.session, project.id, principal.id),
        )

    def update_project(self, principal: AuthenticatedPrincipal, project_id: str, data: ProjectUpdate) -> Project:
        project = load_project(self.session, principal, project_id)
        require_project_role(
            self.session, principal, project.id, [ProjectRole.OWNER, ProjectRole.DEVELOPER],
            detail="Access denied: Only project owners, developers, or admins can update this project"
        )

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name") is None and "description" not in update_data:
            raise ValidationError(
                "At least one field (name or description) must be provided",
                reason="missing_field"
            )

        name = None
        if update_data.get("name") is not None:
            try:
                name = clean_project_name(update_data["name"])
            except ValueError as e:
                raise ValidationError(f"name: {e}", reason="length_violation")

        try:
            if name is not None:
                project.name = name
            if "description" in update_data:
                project.description = update_data["description"]
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(project)
        logger.info(f"Project updated: {project.id} by {principal.id}")
        return project

    def delete_project(self, principal: AuthenticatedPrincipal, project_id: str) -> None:
        """Delete a project and all of its memberships in one transaction."""
        project = load_project(self.session, principal, project_id)
        self._require_owner(project, principal, "delete this project")

        try:
            purged = self.memberships.purge_project(project.id)
            self.session.delete(project)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Project deleted: {project.id} by {principal.id} ({purged} memberships removed)")

    def _team(self, project_id: str) -> list[TeamMemberResponse]:
        return [
            TeamMemberResponse(
                user_id=membership.user_id,
                email=membership.user.email,
                role=membership.role,
                assigned_at=membership.assigned_at,
            )
            for membership in self.memberships.list_members(project_id)
        ]

    def list_team(self, principal: AuthenticatedPrincipal, project_id: str) -> list[TeamMemberResponse]:
        project = load_project(self.session, principal, project_id)
        require_project_role(self.session, principal, project.id, ANY_PROJECT_ROLE)
        return self._team(project.id)

    def assign_member(
        self,
        principal: AuthenticatedPrincipal,
        project_id: str,
        user_id: Optional[str],
        role: Optional[str],
    ) -> ProjectMembership:
        project = load_project(self.session, principal, project_id)
        self._require_owner(project, principal, "assign users")

        if user_id is None:
            raise ValidationError("user_id: Field required", reason="missing_field")
        return self.memberships.assign(project.id, user_id, parse_project_role(role))

    def change_member_role(
        self,
        principal: AuthenticatedPrincipal,
        project_id: str,
        user_id: str,
        role: Optional[str],
    ) -> ProjectMembership:
        project = load_project(self.session, principal, project_id)
        self._require_owner(project, principal, "update user roles")
        return self.memberships.change_role(
            project.id, user_id, parse_project_role(role), requester_is_admin=principal.is_admin
        )

    def remove_member(self, principal: AuthenticatedPrincipal, project_id: str, user_id: str) -> None:
        project = load_project(self.session, principal, project_id)
        self._require_owner(project, principal, "remove users")
        self.memberships.remove(project.id, user_id, requester_is_admin=principal.is_admin)


def get_project_service(db: Session = Depends(get_db)) -> ProjectService:
    return ProjectService(db)
