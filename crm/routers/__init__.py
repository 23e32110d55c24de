"""API routers."""

from crm.routers.admin import router as admin_router
from crm.routers.analytics import router as analytics_router
from crm.routers.appointments import router as appointments_router
from crm.routers.contacts import router as contacts_router
from crm.routers.courses import router as courses_router
from crm.routers.email_campaigns import router as email_campaigns_router
from crm.routers.forms import public_router as forms_public_router
from crm.routers.forms import router as forms_router
from crm.routers.health import router as health_router
from crm.routers.pipelines import router as pipelines_router
from crm.routers.websites import router as websites_router
from crm.routers.workflows import router as workflows_router

__all__ = [
    "admin_router",
    "analytics_router",
    "appointments_router",
    "contacts_router",
    "courses_router",
    "email_campaigns_router",
    "forms_public_router",
    "forms_router",
    "health_router",
    "pipelines_router",
    "websites_router",
    "workflows_router",
]
