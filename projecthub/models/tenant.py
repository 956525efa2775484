"""
Tenant Model

The tenant (a client company) is the isolation boundary. Every user and
every project carries a tenant_id, and no request may read or change data
across that boundary.

Tenants are created when a company registers and are never merged or
split. Deleting a tenant is not supported by the application.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from projecthub.database import Base
import uuid


class Tenant(Base):
    __tablename__ = "tenants"

    # UUID ids avoid enumeration and are validated by shape before lookup
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Company names are unique system-wide; a second registration with the
    # same name must join by id instead
    name = Column(String(255), unique=True, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # No cascade: users and projects outlive nothing, tenants are not deleted
    users = relationship("User", back_populates="tenant")
    projects = relationship("Project", back_populates="tenant")

    def __repr__(self):
        return f"<Tenant {self.name}>"
