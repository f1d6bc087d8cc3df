# main.py
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from datetime import datetime
from pydantic import BaseModel, Field
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from common.config import initialize_config, get_config, is_configured
from common.logger import get_app_logger
from common.logger.logger_middleware import RequestLoggingMiddleware
from common.api_error import ConfigurationError, AppError
from typing import Any, Optional
from app.db import DbManager
from app.api.maintenance_middleware import MaintenanceModeMiddleware
from app.api.v1 import (
    admin_router,
    appointment_router,
    notification_router,
    staff_router,
)
from app.services.v1 import NotificationDispatcher, SettingsCache
from contextlib import asynccontextmanager
from fastapi.responses import JSONResponse

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    # Can't use logger yet, but that's OK - this is a fatal startup error
    print(f"FATAL: Configuration error:\n{e}")
    import sys

    sys.exit(1)

config = get_config()
logger = get_app_logger(
    name=__name__,
    track_timing=True,
)

app_title = config.app_title
app_version = config.app_version


@asynccontextmanager
async def lifespan(app: FastAPI):
    _db_config = config.database
    if not _db_config:
        raise RuntimeError("Database configuration required")

    logger.info("Database configuration", **_db_config.to_dict_safe())

    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()

    # Ensure migrations are up-to-date (fail fast if not)
    try:
        await db_manager.verify_migrations_current()
        logger.info("All migrations applied")
    except RuntimeError as e:
        logger.error("Migration check failed", error=str(e))
        logger.error("Run 'alembic upgrade head'")
        raise

    app.state.db_manager = db_manager
    app.state.auth_config = config.auth
    app.state.notification_dispatcher = NotificationDispatcher.from_config(
        config.notifications
    )
    app.state.settings_cache = SettingsCache(ttl_seconds=config.settings_cache_ttl)

    yield
    logger.info("shutting down")
    await db_manager.dispose()


app = FastAPI(
    title=app_title,
    version=app_version,
    description=f"Running in {config.environment} environment",
    lifespan=lifespan,
)
# Last added runs first: requests are logged even when maintenance answers 503
app.add_middleware(MaintenanceModeMiddleware)
app.add_middleware(
    RequestLoggingMiddleware,
    expose_performance_headers=config.environment.exposes_server_timing,
)

app.include_router(appointment_router)
app.include_router(notification_router)
app.include_router(staff_router)
app.include_router(admin_router)


def _error_body(code: str, message: str, details: Optional[Any] = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": code,
        "message": message,
        "timestamp": datetime.now().isoformat(),
    }
    if details is not None:
        body["details"] = details
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Domain Error: {exc.code}",
        path=request.url.path,
        error_code=exc.code,
        message=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.code, exc.message),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", path=request.url.path, errors=details)
    return JSONResponse(
        status_code=400,
        content=_error_body("VALIDATION_ERROR", "Invalid request", details),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(
        "Database error",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("DATABASE_ERROR", "Database operation failed"),
    )


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Current system health status")
    timestamp: datetime = Field(..., description="Server time in ISO 8601 format")
    version: str = Field(..., description="Application version")
    logging_configured: bool = Field(..., description="Logging configuration status")
    log_level: str = Field(..., description="Application log level")
    database: Optional[dict[str, Any]] = Field(None, description="Database probe result")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message describing the failure")
    timestamp: datetime = Field(..., description="Server time when the error occurred")


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    responses={
        200: {"description": "System is healthy", "model": HealthCheckResponse},
        503: {"description": "System is unhealthy", "model": ErrorResponse},
    },
)
async def check_health(request: Request) -> HealthCheckResponse:
    db_manager: Optional[DbManager] = getattr(request.app.state, "db_manager", None)
    database = await db_manager.health_check() if db_manager else None

    if database is not None and not database["healthy"]:
        logger.error("Health check failed", endpoint="/health", error=database.get("error"))
        err = ErrorResponse(
            error="database unavailable",
            timestamp=datetime.now(),
        )
        raise HTTPException(
            status_code=503,
            detail=err.model_dump(mode="json"),
        )

    logger.debug("Health check passed", version=app_version, endpoint="/health")
    return HealthCheckResponse(
        status="Healthy",
        timestamp=datetime.now(),
        version=app_version,
        logging_configured=is_configured(),
        log_level=get_config().logging.level_value,
        database=database,
    )


@app.get("/metrics")
async def metrics(request: Request) -> dict[str, Any]:
    """Logger timing, pool configuration and notification delivery counters."""
    state = request.app.state
    db_manager: Optional[DbManager] = getattr(state, "db_manager", None)
    dispatcher: Optional[NotificationDispatcher] = getattr(
        state, "notification_dispatcher", None
    )
    return {
        "logger": logger.get_timing_stats(),
        "database": db_manager.get_config_snapshot() if db_manager else None,
        "notifications": {
            "channels": [c.name for c in dispatcher.channels] if dispatcher else [],
            "delivery_failures": dispatcher.delivery_failures if dispatcher else 0,
        },
    }


__all__ = ["app", "config"]
