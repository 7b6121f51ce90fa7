"""
Shipment Management Service
JSON API, public tracking, web UI and operational endpoints in one FastAPI app
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi.middleware import SlowAPIMiddleware
from contextlib import asynccontextmanager
import subprocess
import os

from shipment_service.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from shipment_service.core_settings import get_settings
from shipment_service.api.handlers import register_exception_handlers
from shipment_service.api.routes import auth, pages, shipments, track, users
from shipment_service.infrastructure.db import get_engine, init_models
from shipment_service.infrastructure.rate_limit import limiter

settings = get_settings()

SERVICE_NAME = settings.SERVICE_NAME
SERVICE_VERSION = settings.SERVICE_VERSION
SERVICE_DESCRIPTION = "Shipment management with authentication, status tracking and attachments"
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..")

# Setup structured logging
setup_logging(
    service_name=SERVICE_NAME,
    level=settings.LOG_LEVEL,
)

logger = get_logger(__name__)

def run_migrations() -> None:
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")

def config_problems() -> list[str]:
    problems = []
    if settings.JWT_SECRET == "change-me" and not settings.is_development:
        problems.append("JWT_SECRET is left at its default")
    if not settings.API_PREFIX.startswith("/"):
        problems.append("API_PREFIX must start with '/'")
    return problems

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS:
        try:
            run_migrations()
        except OSError as e:
            logger.error(f"Migration error: {e}")

    try:
        init_models()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")

app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api-docs",
    redoc_url=None,
    openapi_url="/api-docs.json",
)

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response

app.state.limiter = limiter
register_exception_handlers(app)

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Health checks
health_service = ServiceHealth(
    SERVICE_NAME,
    SERVICE_VERSION,
    engine_provider=get_engine,
    redis_url=settings.REDIS_URL,
    upload_dir=settings.UPLOAD_DIR,
    config_checks=config_problems,
)
app.include_router(health_service.create_health_router())

# JSON API
for module in (auth, shipments, track, users):
    app.include_router(module.router, prefix=settings.API_PREFIX)

app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)

# Web UI, including the landing page at /
app.include_router(pages.router)

@app.get("/info")
async def info():
    """Service information endpoint"""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "api": settings.API_PREFIX,
            "tracking": f"{settings.API_PREFIX}/track/{{trackingNumber}}",
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api-docs",
        },
    }
