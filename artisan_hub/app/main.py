import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from artisan_hub.app.api import artisans
from artisan_hub.app.api.deps import get_session
from artisan_hub.app.core import responses
from artisan_hub.app.core.database import create_engine, create_sessionmaker
from artisan_hub.app.core.exceptions import ServiceError
from artisan_hub.app.core.limiter import limiter
from artisan_hub.app.core.logging import RequestContextMiddleware, setup_logging, get_logger
from artisan_hub.app.core.metrics import PrometheusMiddleware, get_metrics_response
from artisan_hub.app.core.settings import Settings, load_settings

logger = get_logger(__name__)

APP_VERSION = "1.0.0"

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    503: "SERVICE_UNAVAILABLE",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - Startup: log configuration
    - Shutdown: dispose the connection pool
    """
    logger.info("Application starting up", version=APP_VERSION, environment=app.state.settings.ENVIRONMENT)
    yield
    logger.info("Application shutting down")
    await app.state.engine.dispose()


async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("Service error", path=request.url.path, error_code=exc.error_code, error=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, error_code=exc.error_code, error=exc.message)
    return responses.error(exc.message, exc.error_code, exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return responses.error("; ".join(details) or "Invalid request", "VALIDATION_ERROR", 400)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.info("Rate limit exceeded", path=request.url.path, limit=str(exc.detail))
    return responses.error(f"Rate limit exceeded: {exc.detail}", "RATE_LIMITED", 429)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return responses.error(str(exc.detail), code, exc.status_code)


def create_app(settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None) -> FastAPI:
    """
    Build the application.

    Settings, engine and session factory live on app.state; request handlers
    reach them through dependencies (see api.deps.get_session).
    Run with: uvicorn artisan_hub.app.main:create_app --factory
    """
    if settings is None:
        try:
            settings = load_settings()
        except ValueError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            sys.exit(1)

    # Use JSON format in production
    setup_logging(log_level=settings.LOG_LEVEL, json_format=settings.is_production)

    logger.info(
        "Application configuration loaded",
        environment=settings.ENVIRONMENT,
        db_host=settings.DB_HOST,
    )

    if engine is None:
        engine = create_engine(settings)

    app = FastAPI(title="Artisan Hub Backend", version=APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = create_sessionmaker(engine)

    # Use shared limiter (routers use the same instance for @limiter.limit)
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    allowed_origins = settings.allowed_origins_list
    if not allowed_origins:
        # Development fallback; production settings require ALLOWED_ORIGINS
        allowed_origins = ["*"]
        logger.warning("CORS: Allowing all origins (development mode). Set ALLOWED_ORIGINS in production!")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    # Prometheus middleware after CORS (runs first on the way out)
    app.add_middleware(PrometheusMiddleware)
    # Outermost: request_id is bound before anything else logs
    app.add_middleware(RequestContextMiddleware)

    app.include_router(artisans.router)

    @app.get("/health")
    async def health_check(session: AsyncSession = Depends(get_session)):
        """Health check endpoint for monitoring and orchestration."""
        health_status = {
            "status": "healthy",
            "version": APP_VERSION,
            "checks": {"database": "ok"},
        }
        try:
            await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = "error"
        return health_status

    @app.get("/metrics")
    async def metrics_endpoint(openmetrics: bool = False):
        """Prometheus metrics, or OpenMetrics with ?openmetrics=true"""
        return get_metrics_response(openmetrics=openmetrics)

    return app
