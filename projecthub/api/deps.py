"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization.

Every protected route depends on get_current_principal, which resolves the
bearer token and then re-reads the user from storage. Route handlers only
ever see the stored record, never the claims inside the token.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from projecthub.config import Settings
from projecthub.core.authentication import authenticate
from projecthub.database import get_db
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.services.account_service import AccountService
# auto_error is off so a missing header becomes our own 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
) -> AuthenticatedPrincipal:
    """
    Get the authenticated principal for this request.

    Raises UnauthenticatedError when the header is missing, the token is
    invalid or expired, or its user no longer exists.
    """
    token = credentials.credentials if credentials else None
    principal = authenticate(db, token, settings)

    # Picked up by the exception handlers for log context
    request.state.user_id = principal.id
    request.state.tenant_id = principal.tenant_id
    return principal


def get_account_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
) -> AccountService:
    return AccountService(db, settings)
