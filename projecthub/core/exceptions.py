"""
Custom Exceptions

Every failure of an authentication, authorization or membership operation
is one of the typed errors below. Each carries the HTTP status of its
class, a human-readable detail and a machine-readable reason, and is
rendered by a single exception handler in main.py.
"""
from typing import Optional, Dict

from fastapi import HTTPException, status


class ProjectHubError(HTTPException):
    """Base class for typed failures."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "internal_error"

    def __init__(self, detail: str, reason: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)
        self.reason = reason


class UnauthenticatedError(ProjectHubError):
    """
    Raised when no principal can be established.

    Reasons: missing, invalid, expired, not_found.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"

    MESSAGES = {
        "missing": "Authentication required",
        "invalid": "Invalid token",
        "expired": "Token expired",
        "not_found": "User not found",
        "invalid_credentials": "Invalid credentials",
    }

    def __init__(self, reason: str = "invalid", detail: Optional[str] = None):
        super().__init__(
            detail=detail or self.MESSAGES.get(reason, "Could not validate credentials"),
            reason=reason,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(ProjectHubError):
    """
    Raised when an authenticated principal may not perform an action.

    Reasons: cross_tenant, insufficient_global_role,
    insufficient_project_role, no_project_access.
    """

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"

    def __init__(self, detail: str = "Access denied", reason: str = "forbidden"):
        super().__init__(detail=detail, reason=reason)


class TenantIsolationError(ForbiddenError):
    """
    Raised when a resource belongs to a different tenant.

    The wording never depends on the resource or the caller's role, so the
    response reveals nothing about data in other tenants.
    """

    error_type = "tenant_isolation_error"

    def __init__(self, detail: str = "Access denied: This project belongs to a different company"):
        super().__init__(detail=detail, reason="cross_tenant")


class ValidationError(ProjectHubError):
    """
    Raised when input is malformed.

    Reasons: malformed_id, missing_field, bad_type, length_violation,
    invalid_enum_value.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "validation_error"

    def __init__(self, detail: str = "Invalid input", reason: str = "bad_type"):
        super().__init__(detail=detail, reason=reason)


class ConflictError(ProjectHubError):
    """
    Raised when a create would duplicate a unique record.

    Reasons: duplicate_email, duplicate_company_name, duplicate_membership.
    """

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"

    def __init__(self, detail: str, reason: str):
        super().__init__(detail=detail, reason=reason)


class NotFoundError(ProjectHubError):
    """
    Raised when a looked-up record does not exist.

    The reason names the entity: tenant, project, principal, membership.
    """

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"

    MESSAGES = {
        "tenant": "Client company not found",
        "project": "Project not found",
        "principal": "User not found",
        "membership": "User assignment not found",
    }

    def __init__(self, entity: str, detail: Optional[str] = None):
        super().__init__(detail=detail or self.MESSAGES.get(entity, "Not found"), reason=entity)


class BusinessRuleError(ProjectHubError):
    """Raised when a mutation would break a domain invariant."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "business_rule_violation"

    def __init__(self, detail: str, reason: str):
        super().__init__(detail=detail, reason=reason)


class LastOwnerError(BusinessRuleError):
    """Raised when a non-admin would leave a project without an owner."""

    def __init__(self):
        super().__init__(
            detail="Cannot remove the last owner. At least one owner must remain.",
            reason="last_owner_violation",
        )

