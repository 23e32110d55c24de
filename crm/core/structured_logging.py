"""Structured logging helpers (PII-safe)."""

from typing import Any

from starlette.requests import Request

from crm.core.middleware import ORG_ID_HEADER, USER_ID_HEADER


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict without contact data."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if org_id:
        context["org_id"] = org_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def request_log_context(request: Request) -> dict[str, Any]:
    """Log context for the verified identity and route of a request."""
    return build_log_context(
        user_id=request.headers.get(USER_ID_HEADER),
        org_id=request.headers.get(ORG_ID_HEADER),
        route=request.url.path,
        method=request.method,
    )
