"""
Database Models

Users and projects carry tenant_id for multi-tenant isolation;
memberships inherit their tenant through the project.
"""
from projecthub.models.tenant import Tenant
from projecthub.models.user import User, GlobalRole
from projecthub.models.project import Project
from projecthub.models.membership import ProjectMembership, ProjectRole

__all__ = ["Tenant", "User", "GlobalRole", "Project", "ProjectMembership", "ProjectRole"]
