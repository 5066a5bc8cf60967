"""SealSign API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text

from sealsign_api.db.session import SessionLocal
from sealsign_api.errors import SealingFailedError, SealSignError
from sealsign_api.middleware.correlation import CorrelationIDFilter, CorrelationIDMiddleware
from sealsign_api.routes import documents, signature_requests
from sealsign_api.settings import get_settings
from sealsign_api.storage.service import get_blob_store

# Configure logging
_handler = logging.StreamHandler(sys.stdout)
_handler.addFilter(CorrelationIDFilter())
logging.basicConfig(
    level=get_settings().log_level,
    format=(
        '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", '
        '"module": "%(name)s", "correlation_id": "%(correlation_id)s"}'
    ),
    handlers=[_handler],
)
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 30

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting SealSign API...")
    try:
        settings.validate_production_settings()

        from sealsign_api.notifications.service import get_notifier

        notifier = get_notifier()
        logger.info(f"Notifier initialized: {type(notifier).__name__}")
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    yield
    logger.info("Shutting down SealSign API...")


app = FastAPI(
    title="SealSign API",
    description="Click-to-sign signature requests with sealed documents and an audit trail",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

app.include_router(documents.router)
app.include_router(signature_requests.router)


@app.exception_handler(SealSignError)
async def sealsign_error_handler(request: Request, exc: SealSignError):
    """Render domain errors as ``{"detail", "error_code", ...}``."""
    headers = {}
    if isinstance(exc, SealingFailedError) and exc.retryable:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}", extra={"path": request.url.path})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "error_code": "VALIDATION_ERROR", "errors": errors},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "sealsign-api",
        "version": "0.1.0",
    }


def _check_database() -> bool:
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return False
    finally:
        db.close()


def _check_migrations() -> bool:
    """Alembic revision in the database equals the script head."""
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    db = SessionLocal()
    try:
        current_rev = MigrationContext.configure(db.connection()).get_current_revision()
        alembic_cfg = Config(os.path.join(os.path.dirname(__file__), "..", "alembic.ini"))
        alembic_cfg.set_main_option("script_location", os.path.join(os.path.dirname(__file__), "..", "alembic"))
        head_rev = ScriptDirectory.from_config(alembic_cfg).get_current_head()
        if current_rev != head_rev:
            logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
            return False
        return True
    except Exception as e:
        logger.error(f"Migration check failed: {e}")
        return False
    finally:
        db.close()


def _check_redis() -> bool:
    try:
        redis.from_url(settings.redis_url, decode_responses=True).ping()
        return True
    except Exception as e:
        logger.error(f"Redis check failed: {e}")
        return False


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint (verifies dependencies)."""
    checks = {
        "database": _check_database(),
        "migrations": False,
        "redis": _check_redis() if settings.notifier_backend == "celery" else None,
        "object_storage": get_blob_store().ping(),
    }
    if checks["database"]:
        checks["migrations"] = _check_migrations()

    all_ready = all(value for value in checks.values() if value is not None)
    return JSONResponse(
        content={"status": "ready" if all_ready else "not_ready", "checks": checks},
        status_code=200 if all_ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "SealSign API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
