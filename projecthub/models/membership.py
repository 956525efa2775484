"""
Project Membership Model

Grants a user a role on one project. A user holds at most one membership
per project, and every project keeps at least one owner unless a global
admin removed it.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
from projecthub.database import Base
import uuid
import enum


class ProjectRole(str, enum.Enum):
    """
    Authority scoped to a single project.

    Declaration order is the display order of a project team.
    """
    OWNER = "owner"
    DEVELOPER = "developer"
    VIEWER = "viewer"


class ProjectMembership(Base):
    __tablename__ = "project_memberships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    project_id = Column(
        String(36),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role = Column(
        SQLEnum(ProjectRole, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False
    )

    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name='uix_membership_project_user'),
        # Owner counting for the last-owner check
        Index('idx_membership_project_role', 'project_id', 'role'),
    )

    def __repr__(self):
        return f"<ProjectMembership {self.user_id} {self.role} (project={self.project_id})>"
