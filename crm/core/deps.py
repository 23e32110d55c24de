"""FastAPI dependencies for authentication, authorization, and database access.

Identity comes from headers injected by ``AuthMiddleware`` after it has
verified the session cookie; handlers never read the cookie themselves.
"""

from typing import Generator
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from crm.core.exceptions import AuthenticationError, AuthorizationError
from crm.core.middleware import ORG_ID_HEADER, USER_ID_HEADER, USER_ROLE_HEADER
from crm.db.enums import Role
from crm.schemas.auth import UserSession


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a session from the application's Database and ensures it's closed
    after the request.
    """
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


def _header_uuid(request: Request, header: str) -> UUID | None:
    raw = request.headers.get(header)
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        raise AuthenticationError("Invalid or expired token")


def get_org_scope(request: Request) -> UUID:
    """
    Get org_id for query scoping.

    Every list/detail query MUST filter by this value
    to ensure proper tenant isolation.
    """
    org_id = _header_uuid(request, ORG_ID_HEADER)
    if org_id is None:
        raise AuthenticationError("Authentication required")
    return org_id


def get_optional_user_id(request: Request) -> UUID | None:
    return _header_uuid(request, USER_ID_HEADER)


def get_current_session(request: Request) -> UserSession:
    """
    Get full session context: user_id, org_id, role.

    Raises:
        AuthenticationError: identity headers missing
    """
    org_id = get_org_scope(request)
    user_id = get_optional_user_id(request)
    if user_id is None:
        raise AuthenticationError("Authentication required")

    role = request.headers.get(USER_ROLE_HEADER, "")
    return UserSession(
        user_id=user_id,
        org_id=org_id,
        role=Role(role) if Role.has_value(role) else Role.USER,
    )


def require_roles(allowed_roles: list[Role]):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.post("/x", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(session: UserSession = Depends(get_current_session)) -> UserSession:
        if session.role not in allowed_roles:
            raise AuthorizationError("Access denied")
        return session
    return dependency
