"""Application error taxonomy.

Services raise these; ``crm.main`` maps them to HTTP responses of the form
``{"error": message}`` using each class's ``status_code``.
"""

from typing import Any


class CRMError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message: str, details: Any | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(CRMError):
    """Invalid input, duplicate key or disallowed state transition."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None, details: Any | None = None):
        super().__init__(message, details)
        self.field = field


class AuthenticationError(CRMError):
    """Missing or invalid credentials."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(CRMError):
    """Authenticated, but the role does not allow the action."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(CRMError):
    """Entity absent, or owned by another organization."""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any | None = None, message: str | None = None):
        super().__init__(message or f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class DatabaseError(CRMError):
    """Schema or connectivity fault surfaced from the database."""

    status_code = 500

    def __init__(self, message: str = "Database operation failed", code: str | None = None):
        super().__init__(message)
        self.code = code
