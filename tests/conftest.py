from datetime import datetime
from typing import Callable, Generator, Optional
import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import Session
from fastapi.testclient import TestClient
from faker import Faker

from projecthub.config import Settings
from projecthub.core.security import create_access_token, get_password_hash
from projecthub.database import Base, Database, get_db
from projecthub.main import create_app
from projecthub.models import GlobalRole, Project, ProjectMembership, ProjectRole, Tenant, User

fake = Faker()

TEST_PASSWORD = "password123"
# bcrypt is slow; hash once for every fixture user
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={
        "check_same_thread": False,
    },
    poolclass=StaticPool,
)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for testing: no Redis, no table creation at startup."""
    return Settings(
        DATABASE_URL=SQLALCHEMY_DATABASE_URL,
        SECRET_KEY="test-secret-key",
        ENVIRONMENT="test",
        LOG_LEVEL="WARNING",
        RATE_LIMIT_ENABLED=False,
    )


@pytest.fixture(scope="function")
def database() -> Generator[Database, None, None]:
    Base.metadata.create_all(bind=engine)
    try:
        yield Database(engine)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(database: Database) -> Generator[Session, None, None]:
    """Create a test database session."""
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(test_settings: Settings, database: Database, db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client sharing the test session."""
    app = create_app(test_settings, database)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
        # Shutdown disposes the engine; release the shared connection first
        db_session.close()
    app.dependency_overrides.clear()


@pytest.fixture
def make_tenant(db_session: Session) -> Callable[..., Tenant]:
    def _make(name: Optional[str] = None) -> Tenant:
        tenant = Tenant(name=name or f"{fake.company()} {fake.uuid4()[:8]}")
        db_session.add(tenant)
        db_session.commit()
        db_session.refresh(tenant)
        return tenant
    return _make


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(tenant: Tenant, role: Optional[GlobalRole] = GlobalRole.MEMBER, email: Optional[str] = None) -> User:
        user = User(
            tenant_id=tenant.id,
            email=(email or fake.unique.email()).lower(),
            hashed_password=TEST_PASSWORD_HASH,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_project(db_session: Session) -> Callable[..., Project]:
    def _make(tenant: Tenant, owner: Optional[User] = None, name: Optional[str] = None) -> Project:
        project = Project(
            tenant_id=tenant.id,
            name=name or fake.catch_phrase(),
            description=fake.sentence(),
        )
        db_session.add(project)
        db_session.flush()
        if owner is not None:
            db_session.add(ProjectMembership(project_id=project.id, user_id=owner.id, role=ProjectRole.OWNER))
        db_session.commit()
        db_session.refresh(project)
        return project
    return _make


@pytest.fixture
def add_member(db_session: Session) -> Callable[..., ProjectMembership]:
    def _add(project: Project, user: User, role: ProjectRole, assigned_at: Optional[datetime] = None) -> ProjectMembership:
        membership = ProjectMembership(project_id=project.id, user_id=user.id, role=role)
        if assigned_at is not None:
            membership.assigned_at = assigned_at
        db_session.add(membership)
        db_session.commit()
        db_session.refresh(membership)
        return membership
    return _add


@pytest.fixture
def user_password() -> str:
    """Plain password of every fixture user."""
    return TEST_PASSWORD


@pytest.fixture
def auth_headers(test_settings: Settings) -> Callable[[User], dict]:
    """Bearer header for a user, with claims as of now."""
    def _headers(user: User) -> dict:
        token = create_access_token(
            {
                "sub": user.id,
                "email": user.email,
                "tenant_id": user.tenant_id,
                "role": user.role.value if user.role else None,
            },
            settings=test_settings,
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def acme(make_tenant) -> Tenant:
    return make_tenant("Acme Corp")


@pytest.fixture
def globex(make_tenant) -> Tenant:
    return make_tenant("Globex Inc")


@pytest.fixture
def acme_admin(make_user, acme: Tenant) -> User:
    return make_user(acme, role=GlobalRole.ADMIN)


@pytest.fixture
def acme_member(make_user, acme: Tenant) -> User:
    return make_user(acme, role=GlobalRole.MEMBER)


@pytest.fixture
def globex_admin(make_user, globex: Tenant) -> User:
    return make_user(globex, role=GlobalRole.ADMIN)
