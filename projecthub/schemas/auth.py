"""
Authentication Schemas

Request/response models for authentication endpoints, plus the claims
decoded from a token and the principal re-loaded from storage.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from projecthub.models.user import GlobalRole


class Token(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"


class TokenClaims(BaseModel):
    """
    Decoded token payload.

    Untrusted beyond identifying the user: role and tenant are re-read from
    storage on every request.
    """
    user_id: str
    email: str
    tenant_id: str
    role: Optional[str] = None


class AuthenticatedPrincipal(BaseModel):
    """The authoritative identity of the caller for one request."""
    id: str
    email: str
    tenant_id: str
    role: Optional[GlobalRole] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == GlobalRole.ADMIN


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """
    User registration request.

    Exactly one of company_id (join an existing company) or company_name
    (create a new one) must be given.
    """
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)
    company_id: Optional[str] = None
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[GlobalRole] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "securepassword123",
                "company_name": "Acme Corp"
            }
        }


class RegisterResponse(BaseModel):
    """Outcome of a registration."""
    message: str
    user_id: str
    company_id: str
    email: str
    role: GlobalRole


class MeResponse(BaseModel):
    """The caller's own record."""
    id: str
    email: str
    role: Optional[GlobalRole]
    company_id: str
    company_name: str
    created_at: datetime
