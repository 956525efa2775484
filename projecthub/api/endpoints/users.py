"""
User Endpoints

Listing users of the caller's company, e.g. to pick someone to assign to
a project. Users of other companies are never returned.
"""
from typing import List

from fastapi import APIRouter, Depends

from projecthub.api.deps import get_account_service, get_current_principal
from projecthub.schemas.auth import AuthenticatedPrincipal
from projecthub.schemas.user import UserResponse
from projecthub.services.account_service import AccountService
from projecthub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    """List users in the caller's company, ordered by email."""
    users = accounts.list_users(principal)
    logger.debug(f"Listed {len(users)} users for tenant {principal.tenant_id}")
    return users
