"""
User Model

Users belong to exactly one tenant and carry a tenant-wide global role.

IMPORTANT: tenant_id is set at creation and never changed. A user cannot
move between tenants.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from projecthub.database import Base
import uuid
import enum


class GlobalRole(str, enum.Enum):
    """
    Tenant-wide authority level.

    ADMIN: creates projects, bypasses project-level checks inside its tenant
    MEMBER: reaches projects only through memberships
    """
    ADMIN = "admin"
    MEMBER = "member"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id"),
        nullable=False,
        index=True
    )

    # Email is the login identifier, unique across all tenants
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)

    # Nullable only transiently; a user without a role passes no role check
    role = Column(
        SQLEnum(GlobalRole, values_callable=lambda roles: [r.value for r in roles]),
        default=GlobalRole.MEMBER,
        nullable=True,
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="users")
    memberships = relationship("ProjectMembership", back_populates="user")

    __table_args__ = (
        # Common query: users of a tenant ordered by email
        Index('idx_user_tenant_email', 'tenant_id', 'email'),
    )

    def __repr__(self):
        return f"<User {self.email} (tenant={self.tenant_id})>"

    @property
    def is_admin(self) -> bool:
        return self.role == GlobalRole.ADMIN
