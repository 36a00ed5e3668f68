"""
Southville SMS API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- OTP and rate-limit stores (in-memory, or Redis when STORE_BACKEND=redis)
- Database connection
- Background sweep scheduler
- Uniform {"success": false, "message": ...} error responses
- CORS middleware, API routing and the health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import ConfigurationError, ServiceError
from app.core.rate_limit import (
    InMemoryRateLimitStore,
    RateLimitStore,
    RedisRateLimitStore,
    get_rate_limiter,
    init_rate_limiter,
)
from app.core.redis import close_redis, init_redis
from app.core.scheduler import (
    list_registered_jobs,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from app.modules.auth import get_auth_service, init_auth_service, register_auth_jobs
from app.modules.auth.otp import InMemoryOtpStore, OtpManager, OtpStore, RedisOtpStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def _build_stores() -> tuple[OtpStore, RateLimitStore]:
    """Pick the store backend. Falls back to memory if Redis is unavailable outside production."""
    if settings.store_backend == "redis":
        try:
            client = await init_redis()
            logger.info("[OK] Redis connected, using Redis stores")
            return RedisOtpStore(client), RedisRateLimitStore(client)
        except Exception as e:
            logger.error(f"[FAIL] Redis connection failed: {e}")
            if settings.is_production:
                raise
            logger.warning("Falling back to in-memory stores")

    return InMemoryOtpStore(), InMemoryRateLimitStore()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown of:
    - OTP and rate-limit stores
    - Database connection
    - Background sweep scheduler
    """
    logger.info(f"Starting Southville SMS API in {settings.python_env} mode...")

    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not set. Login and protected endpoints will return 500.")

    otp_store, rate_limit_store = await _build_stores()
    rate_limiter = init_rate_limiter(rate_limit_store)
    init_auth_service(
        OtpManager(
            otp_store,
            expiry_seconds=settings.otp_expiry_minutes * 60,
            max_attempts=settings.otp_max_attempts,
        ),
        rate_limiter,
    )

    try:
        await init_db()
        logger.info("[OK] Database connected")
    except Exception as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    register_auth_jobs()
    await start_scheduler()

    yield  # Application runs here

    logger.info("Shutting down Southville SMS API...")

    await stop_scheduler()
    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title="Southville SMS API",
    description="Southville 8B Senior High School student portal API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error Envelope
# ============================================


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(ServiceError)
async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error: {exc.detail}")
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = str(detail.get("message", "Request failed."))
    else:
        message = str(detail)
    return _error_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request."
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error.")


# ============================================
# Root Endpoints
# ============================================


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to Southville SMS API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, Any]:
    """Health check with the current auth store sizes."""
    return {
        "success": True,
        "message": "Auth service is running",
        "timestamp": datetime.now(UTC).isoformat(),
        "otp_store_size": await get_auth_service().otp_manager.size(),
        "rate_limit_store_size": await get_rate_limiter().size(),
    }


# ============================================
# Background Job Debug Endpoints
# ============================================
# Development only. In production, sweeps run automatically on schedule.

debug_router = APIRouter()


@debug_router.get("/jobs")
async def list_jobs():
    """List registered background jobs and their next run time."""
    return {"jobs": list_registered_jobs()}


@debug_router.post("/jobs/{job_id}/trigger")
async def trigger_job(job_id: str):
    """
    Run a background job immediately.

    Available jobs:
        - auth_sweep_expired_otps
        - auth_sweep_rate_limits
    """
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


if settings.is_development:
    app.include_router(debug_router, prefix="/debug", tags=["Debug"])
