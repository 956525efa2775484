"""
Permission System

Authorization decisions over two independent scopes:

- global role (admin | member) within the caller's tenant
- project role (owner | developer | viewer) through a membership

Every require_* function returns normally on ALLOW and raises a typed
ForbiddenError on DENY. Call sites declare the roles they accept; there is
no implied hierarchy between roles.

Order matters on project-scoped resources: require_tenant_match runs
first, so a caller from another tenant always gets the same cross-tenant
error whatever their role would otherwise allow.
"""
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from projecthub.core.exceptions import ForbiddenError, TenantIsolationError
from projecthub.models.membership import ProjectMembership, ProjectRole
from projecthub.models.user import User, GlobalRole
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)


def _role_names(roles: Iterable) -> list[str]:
    return [getattr(role, "value", role) for role in roles]


def require_global_role(
    principal: AuthenticatedPrincipal,
    allowed_roles: Iterable[GlobalRole],
) -> AuthenticatedPrincipal:
    """Deny unless the principal's global role is one of allowed_roles."""
    allowed = _role_names(allowed_roles)
    if principal.role is None or principal.role.value not in allowed:
        log_security_event(
            "privilege_escalation",
            {"user_id": principal.id, "tenant_id": principal.tenant_id, "required": allowed},
            logger
        )
        raise ForbiddenError(
            detail=f"Insufficient permissions. Required roles: {', '.join(allowed)}",
            reason="insufficient_global_role"
        )
    return principal


def require_tenant_match(principal: AuthenticatedPrincipal, resource_tenant_id: Optional[str]) -> None:
    """
    Deny unconditionally if the resource lives in another tenant.

    The global role is deliberately not consulted: admins are admins of
    their own tenant only.
    """
    if principal.tenant_id != resource_tenant_id:
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": principal.id, "tenant_id": principal.tenant_id},
            logger
        )
        raise TenantIsolationError()


def get_membership(db: Session, project_id: str, user_id: str) -> Optional[ProjectMembership]:
    return db.query(ProjectMembership).filter(
        ProjectMembership.project_id == project_id,
        ProjectMembership.user_id == user_id
    ).first()


def require_project_role(
    db: Session,
    principal: AuthenticatedPrincipal,
    project_id: str,
    allowed_roles: Iterable[ProjectRole],
    detail: Optional[str] = None,
) -> AuthenticatedPrincipal:
    """
    Deny unless the principal holds one of allowed_roles on the project.

    Global admins are allowed without a membership lookup. The caller is
    responsible for the tenant check on the project beforehand. detail
    replaces the message of the insufficient-role denial.

    Storage errors propagate; only the is_* predicates below swallow them.
    """
    if principal.is_admin:
        return principal

    allowed = _role_names(allowed_roles)
    membership = get_membership(db, project_id, principal.id)

    if not membership:
        raise ForbiddenError(
            detail="Access denied: You do not have access to this project",
            reason="no_project_access"
        )

    if membership.role.value not in allowed:
        raise ForbiddenError(
            detail=detail or f"Access denied: Insufficient project permissions. Required roles: {', '.join(allowed)}",
            reason="insufficient_project_role"
        )

    return principal


def _has_admin_or_project_role(db: Session, project_id: str, user_id: str, roles: Iterable[ProjectRole]) -> bool:
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user and user.role == GlobalRole.ADMIN:
            return True

        membership = get_membership(db, project_id, user_id)
        return membership is not None and membership.role in set(roles)
    except SQLAlchemyError as e:
        logger.error(f"Error checking project role for user {user_id} on {project_id}: {e}")
        return False


def is_owner_or_admin(db: Session, project_id: str, user_id: str) -> bool:
    """
    True if the user is a global admin or an owner of the project.

    Never raises; lookup failures count as False.
    """
    return _has_admin_or_project_role(db, project_id, user_id, [ProjectRole.OWNER])


def is_owner_developer_or_admin(db: Session, project_id: str, user_id: str) -> bool:
    """Like is_owner_or_admin, also True for developers."""
    return _has_admin_or_project_role(
        db, project_id, user_id, [ProjectRole.OWNER, ProjectRole.DEVELOPER]
    )
