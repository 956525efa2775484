"""
Membership Store

Reads and mutates the user-to-project relation. Every mutating method is
one transaction: it commits on success and rolls back before raising.

Owner-count checks take a row lock on the parent project first
(SELECT ... FOR UPDATE), so two concurrent removals of "the other owner"
are serialized and cannot both see two owners and leave zero.
"""
from typing import Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from projecthub.core.exceptions import ConflictError, LastOwnerError, NotFoundError
from projecthub.core.tenancy import require_same_tenant_user
from projecthub.models.membership import ProjectMembership, ProjectRole
from projecthub.models.project import Project
from projecthub.models.user import User
from projecthub.utils.identifiers import validate_uuid
from projecthub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# Team display order: owner, developer, viewer
ROLE_ORDER = case(
    {role.value: position for position, role in enumerate(ProjectRole)},
    value=ProjectMembership.role,
    else_=len(ProjectRole),
)


class MembershipStore:
    def __init__(self, session: Session):
        self.session = session

    def _lock_project(self, project_id: str) -> Project:
        project = (
            self.session.query(Project)
            .filter(Project.id == project_id)
            .with_for_update()
            .first()
        )
        if not project:
            raise NotFoundError("project")
        return project

    def _get(self, project_id: str, user_id: str) -> Optional[ProjectMembership]:
        return self.session.query(ProjectMembership).filter(
            ProjectMembership.project_id == project_id,
            ProjectMembership.user_id == user_id
        ).first()

    def count_owners(self, project_id: str) -> int:
        return self.session.query(ProjectMembership).filter(
            ProjectMembership.project_id == project_id,
            ProjectMembership.role == ProjectRole.OWNER
        ).count()

    def assign(self, project_id: str, target_user_id: str, role: ProjectRole) -> ProjectMembership:
        """
        Add a user to a project.

        The user must exist and belong to the project's tenant, and must not
        already be a member.
        """
        target_user_id = validate_uuid(target_user_id, "user ID")
        try:
            project = self._lock_project(project_id)

            target = self.session.query(User).filter(User.id == target_user_id).first()
            if not target:
                raise NotFoundError("principal")

            require_same_tenant_user(project, target)

            if self._get(project.id, target.id):
                raise ConflictError("User is already assigned to this project", reason="duplicate_membership")

            membership = ProjectMembership(project_id=project.id, user_id=target.id, role=role)
            self.session.add(membership)
            self.session.commit()
        except IntegrityError:
            # Lost a race against a concurrent assign of the same pair
            self.session.rollback()
            raise ConflictError("User is already assigned to this project", reason="duplicate_membership")
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(membership)
        logger.info(f"User {target_user_id} assigned to project {project_id} as {role.value}")
        return membership

    def change_role(
        self,
        project_id: str,
        target_user_id: str,
        new_role: ProjectRole,
        requester_is_admin: bool = False,
    ) -> ProjectMembership:
        """
        Change a member's project role.

        Downgrading the only owner is held to the same rule as removing
        them: only a global admin may do it.
        """
        target_user_id = validate_uuid(target_user_id, "user ID")
        try:
            self._lock_project(project_id)

            membership = self._get(project_id, target_user_id)
            if not membership:
                raise NotFoundError("membership")

            if (
                membership.role == ProjectRole.OWNER
                and new_role != ProjectRole.OWNER
                and not requester_is_admin
                and self.count_owners(project_id) <= 1
            ):
                raise LastOwnerError()

            membership.role = new_role
            self.session.commit()
        except LastOwnerError:
            self.session.rollback()
            log_security_event(
                "last_owner_violation",
                {"project_id": project_id, "user_id": target_user_id, "action": "change_role"},
                logger
            )
            raise
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(membership)
        logger.info(f"User {target_user_id} role on project {project_id} changed to {new_role.value}")
        return membership

    def remove(self, project_id: str, target_user_id: str, requester_is_admin: bool = False) -> None:
        """
        Remove a member from a project.

        A non-admin may not remove the last remaining owner.
        """
        target_user_id = validate_uuid(target_user_id, "user ID")
        try:
            self._lock_project(project_id)

            membership = self._get(project_id, target_user_id)
            if not membership:
                raise NotFoundError("membership")

            if membership.role == ProjectRole.OWNER and not requester_is_admin:
                if self.count_owners(project_id) <= 1:
                    raise LastOwnerError()

            self.session.delete(membership)
            self.session.commit()
        except LastOwnerError:
            self.session.rollback()
            log_security_event(
                "last_owner_violation",
                {"project_id": project_id, "user_id": target_user_id, "action": "remove"},
                logger
            )
            raise
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"User {target_user_id} removed from project {project_id}")

    def list_members(self, project_id: str) -> list[ProjectMembership]:
        """Members of a project, by role (owner first) then assignment time."""
        return (
            self.session.query(ProjectMembership)
            .options(joinedload(ProjectMembership.user))
            .filter(ProjectMembership.project_id == project_id)
            .order_by(ROLE_ORDER, ProjectMembership.assigned_at.asc())
            .all()
        )

    def purge_project(self, project_id: str) -> int:
        """
        Delete every membership of a project.

        Does not commit; used inside the project deletion transaction.
        """
        return self.session.query(ProjectMembership).filter(
            ProjectMembership.project_id == project_id
        ).delete(synchronize_session=False)
