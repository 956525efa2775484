"""
Project Model

Projects belong to one tenant. Access to a project is granted through
ProjectMembership rows; the project itself has no owner column, its
owners are the memberships with role "owner".
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from projecthub.database import Base
import uuid


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # CRITICAL: checked against the caller's tenant before any role check
    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="projects")
    memberships = relationship("ProjectMembership", back_populates="project")

    __table_args__ = (
        # Listing a tenant's projects newest first
        Index('idx_project_tenant_created', 'tenant_id', 'created_at'),
    )

    def __repr__(self):
        return f"<Project {self.name} (tenant={self.tenant_id})>"
