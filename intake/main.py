# intake/main.py
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from intake import __version__
from intake.core.config import settings
from intake.core.exceptions import GENERIC_ERROR_MESSAGE, BaseAPIException, RateLimitError
from intake.core.logging import configure_structlog, get_structlog_logger
from intake.db import session as db_session
from intake.middleware import (
    LoggingMiddleware,
    RateLimitingMiddleware,
    RequestIdMiddleware,
    SecurityHeadersMiddleware,
)
from intake.routes import health_router, intake_router
from intake.services.redis import close_redis_pool, init_redis_pool

INVALID_BODY_MESSAGE = "Invalid request body"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown of shared connections."""
    logger = get_structlog_logger(__name__)

    logger.info("application.starting", environment=settings.environment)

    # Redis only backs rate limiting; it is required in production
    try:
        await init_redis_pool()
    except Exception as e:
        logger.error("redis.connection_failed", error=str(e))
        if settings.is_production:
            raise

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            integrations=[
                AsyncioIntegration(),
                FastApiIntegration(),
                StarletteIntegration(),
            ],
            traces_sample_rate=1.0 if settings.is_development else 0.1,
            send_default_pii=False,
        )
        logger.info("sentry.initialized")

    logger.info("application.started")
    yield

    logger.info("application.shutting_down")

    await close_redis_pool()

    if db_session.engine is not None:
        await db_session.engine.dispose()
        logger.info("database.connection_closed")

    logger.info("application.shutdown_complete")


configure_structlog()
logger = get_structlog_logger(__name__)

app = FastAPI(
    title="Lead Intake API",
    version=__version__,
    description="Public lead intake with TCPA consent capture",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

# Starlette wraps in reverse order: the last middleware added runs first.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins(),
    allow_credentials=False,
    allow_methods=settings.methods(),
    allow_headers=settings.allowed_headers.split(","),
    expose_headers=["X-Request-ID", "X-Response-Time"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.hosts())
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)

if settings.rate_limit_enabled and not (settings.is_development or settings.is_testing):
    app.add_middleware(RateLimitingMiddleware)

app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Render API exceptions as {"error": ...}; 5xx detail stays in the logs."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "api.exception",
        status_code=exc.status_code,
        code=exc.code,
        error=exc.message,
        path=request.url.path,
        method=request.method,
    )

    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after is not None:
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": error.get("loc", []),
            "msg": error.get("msg", "Validation error"),
            "type": error.get("type", "value_error"),
        }
        for error in exc.errors()
    ]

    logger.warning(
        "validation.error",
        path=request.url.path,
        method=request.method,
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": INVALID_BODY_MESSAGE},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = f"err_{uuid.uuid4().hex[:12]}"

    logger.error(
        "unhandled.exception",
        error_id=error_id,
        error_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_ERROR_MESSAGE},
        headers={"X-Error-ID": error_id},
    )


app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(intake_router, prefix=settings.api_prefix)

if not settings.is_testing:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/")
async def root():
    return {
        "name": "Lead Intake API",
        "version": app.version,
        "environment": settings.environment,
        "docs": "/docs" if settings.is_development else None,
        "health": f"{settings.api_prefix}/health",
        "intake": f"{settings.api_prefix}/intake/lead",
    }


logger.info("application.configured", environment=settings.environment)
