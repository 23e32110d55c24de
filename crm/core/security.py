"""Security utilities for JWT session tokens."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from crm.core.config import settings


# =============================================================================
# Session Token (JWT in cookie)
# =============================================================================

def create_session_token(
    user_id: UUID,
    org_id: UUID,
    role: str,
    expires_hours: int | None = None,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, org context and role.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "organization_id": str(org_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours or settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                options={"require": ["exp", "id", "organization_id"]},
            )
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
