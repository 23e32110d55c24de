"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from crm.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    id: UUID  # user_id
    organization_id: UUID
    role: str


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency.
    """
    user_id: UUID
    org_id: UUID
    role: Role
