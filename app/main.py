"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings

# Sentry initialization (must be before app creation)
settings_early = get_settings()
if settings_early.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings_early.sentry_dsn,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        traces_sample_rate=0.1,
        environment="production" if not settings_early.debug else "development",
    )
from app.api.routes import auth as auth_routes
from app.api.routes import cron as cron_routes
from app.api.routes import letters as letters_routes
from app.api.routes import notifications as notifications_routes
from app.api.routes import requests as requests_routes
from app.api.routes import users as users_routes
from app.database import async_session_maker, engine
from app.services.redis_client import close_redis_client, redis_status

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting DMED API...")
    logger.info(f"Debug mode: {settings.debug}")

    # Test database connection
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    yield

    # Cleanup
    logger.info("Shutting down DMED API...")
    await close_redis_client()
    await engine.dispose()


# API Tags metadata for OpenAPI documentation
tags_metadata = [
    {
        "name": "Authentication",
        "description": "Staff login and JWT token management.",
    },
    {
        "name": "letters",
        "description": "Incoming letters - listing, single-field updates with history, duplication.",
    },
    {
        "name": "users",
        "description": "User administration - bulk role, login and delete actions.",
    },
    {
        "name": "notifications",
        "description": "In-app notifications, notification settings and deadline checks.",
    },
    {
        "name": "requests",
        "description": "Service requests with SLA tracking.",
    },
    {
        "name": "cron",
        "description": "Scheduled jobs, authenticated with the cron secret.",
    },
]

# Create FastAPI application
app = FastAPI(
    title="DMED API",
    description="""
## Office workflow backend

This API provides endpoints for:

- **Letters** - Incoming correspondence, its status workflow and change history
- **Users** - Bulk administration
- **Notifications** - In-app notifications with email, Telegram and SMS delivery
- **Requests** - Service requests with SLA deadlines
- **Cron** - Deadline checks, digests and SLA updates

### Authentication

Most endpoints require a valid JWT token. Obtain one via `/api/auth/login` and include it in the `Authorization` header as `Bearer <token>`.
    """,
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": detail}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors as 400 with the first message."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide details from the client."""
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.get("/health")
async def health_check():
    """Database and Redis reachability."""
    db_status = "unknown"

    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
            db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Health check - DB error: {e}")

    return {
        "status": "ok",
        "database": db_status,
        "redis": await redis_status(),
        "version": "0.1.0",
    }


# Include routers
app.include_router(auth_routes.router, prefix="/api")
app.include_router(letters_routes.router, prefix="/api")
app.include_router(users_routes.router, prefix="/api")
app.include_router(notifications_routes.router, prefix="/api")
app.include_router(requests_routes.router, prefix="/api")
app.include_router(cron_routes.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to DMED API",
        "docs": "/docs",
        "health": "/health",
    }
