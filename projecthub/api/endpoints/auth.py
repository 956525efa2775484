"""
Authentication Endpoints

Registration, login and the caller's own record.

Registration with company_name creates the company and makes the user its
admin. Registration with company_id joins an existing company as a member
(or with the requested role).
"""
from fastapi import APIRouter, Depends, status

from projecthub.api.deps import get_account_service, get_current_principal
from projecthub.schemas.auth import (
    AuthenticatedPrincipal,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    Token,
)
from projecthub.services.account_service import AccountService
from projecthub.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    registration: RegisterRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """
    Register a new user.

    NOTE: No email verification; anyone who knows a company id can join it.
    """
    user, is_new_company = accounts.register(registration)

    return RegisterResponse(
        message=(
            "Company created and user registered as admin"
            if is_new_company
            else "User registered successfully"
        ),
        user_id=user.id,
        company_id=user.tenant_id,
        email=user.email,
        role=user.role,
    )


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    accounts: AccountService = Depends(get_account_service)
):
    """
    Authenticate user and return a JWT.

    Unknown email and wrong password both answer 401 "Invalid credentials".
    """
    access_token = accounts.login(credentials.email, credentials.password)
    return Token(access_token=access_token, token_type="bearer")


@router.get("/me", response_model=MeResponse)
async def me(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_account_service)
):
    """Current user with company name."""
    return accounts.me(principal)
