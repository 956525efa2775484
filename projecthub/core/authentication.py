"""
Authentication

Turns a bearer token into the authoritative principal for one request:

1. decode_access_token verifies signature and expiry (security.py)
2. load_principal re-reads the user by id from storage

The second step is a storage read on every request. It is what makes a
role change or a deleted account take effect on the very next request
instead of when the token expires, so the claimed role and tenant in the
token are never used for decisions.
"""
from typing import Optional

from sqlalchemy.orm import Session

from projecthub.config import Settings
from projecthub.core.exceptions import UnauthenticatedError
from projecthub.core.security import decode_access_token
from projecthub.models.user import User
from projecthub.schemas.auth import AuthenticatedPrincipal, TokenClaims
from projecthub.utils.identifiers import is_uuid
from projecthub.utils.logging import get_logger

logger = get_logger(__name__)


def load_principal(db: Session, claims: TokenClaims) -> AuthenticatedPrincipal:
    """
    Load the current record of the user named by the claims.

    Raises UnauthenticatedError("not_found") if the user no longer exists.
    """
    if not is_uuid(claims.user_id):
        raise UnauthenticatedError("invalid")

    user = db.query(User).filter(User.id == claims.user_id.lower()).first()
    if not user:
        logger.warning(f"Token for unknown user: {claims.user_id}")
        raise UnauthenticatedError("not_found")

    if user.tenant_id != claims.tenant_id or user.role != claims.role:
        # Expected after a role change; storage wins
        logger.debug(
            "Token claims are stale, using stored record",
            extra={"user_id": user.id, "tenant_id": user.tenant_id}
        )

    return AuthenticatedPrincipal.model_validate(user)


def authenticate(db: Session, token: Optional[str], settings: Optional[Settings] = None) -> AuthenticatedPrincipal:
    """Resolve a raw bearer token to an AuthenticatedPrincipal."""
    claims = decode_access_token(token, settings)
    return load_principal(db, claims)
