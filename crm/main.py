"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from crm.core.config import settings
from crm.core.exceptions import CRMError
from crm.core.middleware import AuthMiddleware
from crm.core.rate_limit import limiter
from crm.core.structured_logging import request_log_context
from crm.db.session import Database
from crm import routers

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


# ============================================================================
# Logging / Sentry
# ============================================================================

def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def configure_sentry() -> None:
    """Optional error tracking, only outside dev."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info("Sentry initialized for error tracking")


# ============================================================================
# Lifespan
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests may install their own Database before startup
    if getattr(app.state, "db", None) is None:
        app.state.db = Database.from_settings()
    app.state.db.init()
    try:
        yield
    finally:
        app.state.db.shutdown()


# ============================================================================
# Error handlers
# ============================================================================

async def crm_error_handler(request: Request, exc: CRMError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message, extra=request_log_context(request))
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": message, "details": errors}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", request_log_context(request))
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ============================================================================
# App factory
# ============================================================================

def create_app(db: Database | None = None) -> FastAPI:
    configure_logging()
    configure_sentry()

    app = FastAPI(
        title="CRM API",
        description="Multi-tenant CRM and marketing automation API",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
        lifespan=lifespan,
    )
    app.state.db = db

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(CRMError, crm_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Added last so it runs first: preflight requests never reach auth
    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    # Public form routes go first so /forms/public/... never matches /forms/{form_id}
    app.include_router(routers.health_router, prefix=API_PREFIX)
    app.include_router(routers.forms_public_router, prefix=API_PREFIX)
    app.include_router(routers.forms_router, prefix=API_PREFIX)
    app.include_router(routers.contacts_router, prefix=API_PREFIX, tags=["contacts"])
    app.include_router(routers.pipelines_router, prefix=API_PREFIX, tags=["pipelines"])
    app.include_router(routers.email_campaigns_router, prefix=API_PREFIX)
    app.include_router(routers.workflows_router, prefix=API_PREFIX)
    app.include_router(routers.appointments_router, prefix=API_PREFIX)
    app.include_router(routers.courses_router, prefix=API_PREFIX)
    app.include_router(routers.websites_router, prefix=API_PREFIX)
    app.include_router(routers.analytics_router, prefix=API_PREFIX)
    app.include_router(routers.admin_router, prefix=API_PREFIX)
    return app


app = create_app()
