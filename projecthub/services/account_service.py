"""
Account Service

Registration, login and user listing.

Registration either creates a new company (the registering user becomes
its admin) or joins an existing one by id. Login is by email alone since
emails are unique across companies.
"""
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projecthub.config import Settings
from projecthub.core.exceptions import ConflictError, NotFoundError, UnauthenticatedError, ValidationError
from projecthub.core.security import create_access_token, get_password_hash, verify_password
from projecthub.models.tenant import Tenant
from projecthub.models.user import User, GlobalRole
from projecthub.schemas.auth import AuthenticatedPrincipal, MeResponse, RegisterRequest
from projecthub.utils.identifiers import validate_uuid
from projecthub.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)


class AccountService:
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings

    def register(self, registration: RegisterRequest) -> tuple[User, bool]:
        """
        Create a user, and a company when company_name is given.

        Returns the new user and whether a company was created.
        """
        if not registration.company_id and not registration.company_name:
            raise ValidationError(
                "Either company_id or company_name must be provided",
                reason="missing_field"
            )
        if registration.company_id and registration.company_name:
            raise ValidationError(
                "Provide either company_id OR company_name, not both",
                reason="bad_type"
            )
        if len(registration.password) < self.settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {self.settings.PASSWORD_MIN_LENGTH} characters",
                reason="length_violation"
            )

        email = registration.email.lower()
        company_name = None
        if self._email_taken(email):
            raise ConflictError("User with this email already exists", reason="duplicate_email")

        try:
            if registration.company_name:
                company_name = registration.company_name.strip()
                if not company_name:
                    raise ValidationError("Company name cannot be empty", reason="length_violation")

                if self._company_name_taken(company_name):
                    raise ConflictError(
                        "Company with this name already exists. Please join using company_id.",
                        reason="duplicate_company_name"
                    )

                tenant = Tenant(name=company_name)
                self.session.add(tenant)
                self.session.flush()
                is_new_company = True
                role = GlobalRole.ADMIN
            else:
                company_id = validate_uuid(registration.company_id, "company ID")
                tenant = self.session.query(Tenant).filter(Tenant.id == company_id).first()
                if not tenant:
                    raise NotFoundError("tenant")
                is_new_company = False
                role = registration.role or GlobalRole.MEMBER

            user = User(
                tenant_id=tenant.id,
                email=email,
                hashed_password=get_password_hash(registration.password),
                role=role,
            )
            self.session.add(user)
            self.session.commit()
        except IntegrityError:
            # A concurrent registration took the email or company name
            self.session.rollback()
            raise self._registration_conflict(email, company_name)
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(user)
        logger.info(f"New user registered: {user.id} in tenant {tenant.id} (new company: {is_new_company})")
        return user, is_new_company

    def _email_taken(self, email: str) -> bool:
        return self.session.query(User.id).filter(User.email == email).first() is not None

    def _company_name_taken(self, company_name: str) -> bool:
        return self.session.query(Tenant.id).filter(Tenant.name == company_name).first() is not None

    def _registration_conflict(self, email: str, company_name: Optional[str]) -> ConflictError:
        """Tell which unique value a failed registration insert collided with."""
        if company_name and not self._email_taken(email):
            return ConflictError(
                "Company with this name already exists. Please join using company_id.",
                reason="duplicate_company_name"
            )
        return ConflictError("User with this email already exists", reason="duplicate_email")

    def login(self, email: str, password: str) -> str:
        """
        Check credentials and issue an access token.

        Unknown email and wrong password fail with the same message.
        """
        user = self.session.query(User).filter(User.email == email.lower()).first()

        if not user:
            log_security_event("failed_login", {"reason": "user_not_found"}, logger)
            raise UnauthenticatedError("invalid_credentials")

        if not verify_password(password, user.hashed_password):
            log_security_event(
                "failed_login",
                {"reason": "invalid_password", "user_id": user.id, "tenant_id": user.tenant_id},
                logger
            )
            raise UnauthenticatedError("invalid_credentials")

        token = create_access_token(
            {
                "sub": user.id,
                "email": user.email,
                "tenant_id": user.tenant_id,
                "role": user.role.value if user.role else None,
            },
            settings=self.settings,
        )

        logger.info(f"Successful login: user={user.id}, tenant={user.tenant_id}")
        return token

    def me(self, principal: AuthenticatedPrincipal) -> MeResponse:
        user = self.session.query(User).filter(User.id == principal.id).first()
        if not user:
            raise NotFoundError("principal")

        return MeResponse(
            id=user.id,
            email=user.email,
            role=user.role,
            company_id=user.tenant_id,
            company_name=user.tenant.name,
            created_at=user.created_at,
        )

    def list_users(self, principal: AuthenticatedPrincipal) -> list[User]:
        """All users of the principal's company, by email."""
        return (
            self.session.query(User)
            .filter(User.tenant_id == principal.tenant_id)
            .order_by(User.email.asc())
            .all()
        )

