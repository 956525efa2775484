"""
Tenant Isolation Guard

Every handler that loads a project by id goes through load_project, which
validates the id, loads the row and applies the tenant check before any
role check can run.
"""
from sqlalchemy.orm import Session

from projecthub.core.exceptions import NotFoundError, TenantIsolationError
from projecthub.core.permissions import require_tenant_match
from projecthub.models.project import Project
from projecthub.models.user import User
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.utils.identifiers import validate_uuid
from projecthub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)


def load_project(db: Session, principal: AuthenticatedPrincipal, project_id: str) -> Project:
    """
    Load a project the principal may see at tenant level.

    Raises ValidationError for a malformed id, NotFoundError if no such
    project exists and TenantIsolationError if it belongs to another
    tenant.
    """
    project_id = validate_uuid(project_id, "project ID")

    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("project")

    require_tenant_match(principal, project.tenant_id)
    return project


def require_same_tenant_user(project: Project, user: User) -> None:
    """Deny making a user of one tenant a member of another tenant's project."""
    if user.tenant_id != project.tenant_id:
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": user.id, "tenant_id": user.tenant_id, "project_id": project.id},
            logger
        )
        raise TenantIsolationError(
            detail="Access denied: Cannot assign users from different companies"
        )
