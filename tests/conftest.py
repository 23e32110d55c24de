"""
Test configuration and fixtures.

Provides:
- A fresh in-memory SQLite database per test
- Organizations and users in two tenants
- JWT session tokens for authenticated requests
- HTTPX AsyncClients bound to the ASGI app
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from crm.core.deps import get_db
from crm.core.middleware import COOKIE_NAME
from crm.core.rate_limit import limiter
from crm.core.security import create_session_token
from crm.db import models  # noqa: F401
from crm.db.base import Base
from crm.db.enums import Role
from crm.db.models import Organization, User
from crm.db.session import Database
from crm.main import app


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def database() -> Generator[Database, None, None]:
    """Empty schema in a private in-memory database."""
    database = Database("sqlite://").init()
    Base.metadata.create_all(database.engine)
    yield database
    database.shutdown()


@pytest.fixture(scope="function")
def db(database: Database) -> Generator[Session, None, None]:
    session = database.session()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    org = Organization(name="Test Organization")
    db.add(org)
    db.flush()
    return org


@pytest.fixture(scope="function")
def other_org(db: Session) -> Organization:
    """A second tenant, for isolation checks."""
    org = Organization(name="Other Organization")
    db.add(org)
    db.flush()
    return org


def make_user(db: Session, org: Organization, role: Role = Role.USER) -> User:
    user = User(
        organization_id=org.id,
        name="Test User",
        email=f"test-{uuid.uuid4().hex[:8]}@test.com",
        role=role.value,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture(scope="function")
def test_user(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org)


@pytest.fixture(scope="function")
def admin_user(db: Session, test_org: Organization) -> User:
    return make_user(db, test_org, Role.ADMIN)


@pytest.fixture(scope="function")
def other_user(db: Session, other_org: Organization) -> User:
    return make_user(db, other_org)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    org: Organization
    token: str
    cookie_name: str = COOKIE_NAME

    @property
    def bearer(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def make_auth(user: User, org: Organization) -> TestAuth:
    token = create_session_token(user_id=user.id, org_id=org.id, role=user.role)
    return TestAuth(user=user, org=org, token=token)


@pytest.fixture(scope="function")
def test_auth(test_user: User, test_org: Organization) -> TestAuth:
    return make_auth(test_user, test_org)


@pytest.fixture(scope="function")
def admin_auth(admin_user: User, test_org: Organization) -> TestAuth:
    return make_auth(admin_user, test_org)


@pytest.fixture(scope="function")
def other_auth(other_user: User, other_org: Organization) -> TestAuth:
    return make_auth(other_user, other_org)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client, for public endpoints and per-request headers."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Client carrying the session cookie of ``test_user``."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
    ) as c:
        yield c

    app.dependency_overrides.clear()
