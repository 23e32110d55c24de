"""Session cookie authentication middleware.

Verifies the session JWT on every ``/api/`` request, gates admin-only
prefixes, and forwards the verified identity to handlers as request headers
(``x-user-id``, ``x-user-role``, ``x-organization-id``). Client-supplied
values for those headers are always discarded.
"""

import logging

import jwt
from pydantic import ValidationError as PayloadError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from crm.core.security import decode_session_token
from crm.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)

COOKIE_NAME = "auth_token"

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"
ORG_ID_HEADER = "x-organization-id"
IDENTITY_HEADERS = {USER_ID_HEADER.encode(), USER_ROLE_HEADER.encode(), ORG_ID_HEADER.encode()}

API_PREFIX = "/api/"
PUBLIC_PREFIXES = ("/api/health", "/api/forms/public")
ADMIN_PREFIXES = ("/api/admin/", "/api/setup/")
ADMIN_ROLE = "admin"


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class AuthMiddleware(BaseHTTPMiddleware):
    """Authenticate API requests from the session cookie."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        # Never trust identity headers coming from the client
        request.scope["headers"] = [
            (name, value)
            for name, value in request.scope["headers"]
            if name.lower() not in IDENTITY_HEADERS
        ]

        if not path.startswith(API_PREFIX) or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        token = _extract_token(request)
        if not token:
            return _error(401, "Authentication required")

        try:
            identity = TokenPayload.model_validate(decode_session_token(token))
        except (jwt.InvalidTokenError, PayloadError) as e:
            logger.info("Rejected session token on %s: %s", path, e)
            return _error(401, "Invalid or expired token")

        role = identity.role
        if path.startswith(ADMIN_PREFIXES) and role != ADMIN_ROLE:
            return _error(403, "Access denied")

        request.scope["headers"].extend([
            (USER_ID_HEADER.encode(), str(identity.id).encode()),
            (USER_ROLE_HEADER.encode(), role.encode()),
            (ORG_ID_HEADER.encode(), str(identity.organization_id).encode()),
        ])
        return await call_next(request)
