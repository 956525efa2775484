"""
Security Module

Handles password hashing and JWT token generation/validation.
Uses passlib with bcrypt and python-jose.

The token is only trusted to say WHO the caller is. The claimed role and
tenant are informational; the principal loader re-reads both from storage.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from projecthub.config import Settings, get_settings
from projecthub.core.exceptions import UnauthenticatedError
from projecthub.schemas.auth import TokenClaims

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash (constant-time)."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    NOTE: This is intentionally slow. Don't call it in hot paths.
    """
    return pwd_context.hash(password)


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Create a JWT access token.

    Token payload includes:
    - sub: user_id
    - email, tenant_id, role: as of issuance
    - exp: expiration timestamp
    - iat: issued at timestamp
    """
    settings = settings or get_settings()
    to_encode = data.copy()

    now = datetime.utcnow()
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": now
    })

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_access_token(token: Optional[str], settings: Optional[Settings] = None) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its claims.

    Raises UnauthenticatedError with reason "missing" when no token was
    sent, "expired" past expiry, and "invalid" for anything else wrong
    with the signature or payload.
    """
    if not token:
        raise UnauthenticatedError("missing")

    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except ExpiredSignatureError:
        raise UnauthenticatedError("expired")
    except JWTError:
        raise UnauthenticatedError("invalid")

    user_id = payload.get("sub")
    tenant_id = payload.get("tenant_id")
    if not isinstance(user_id, str) or not isinstance(tenant_id, str) or not user_id:
        raise UnauthenticatedError("invalid")

    email = payload.get("email")
    role = payload.get("role")
    return TokenClaims(
        user_id=user_id,
        email=email if isinstance(email, str) else "",
        tenant_id=tenant_id,
        role=role if isinstance(role, str) else None,
    )
