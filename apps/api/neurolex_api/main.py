"""Neurolex API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from neurolex_api.blockchain.errors import ErrorCategory, VerificationError
from neurolex_api.middleware.auth import AuthMiddleware
from neurolex_api.middleware.correlation import CorrelationIDMiddleware
from neurolex_api.routes import tokens, wallets
from neurolex_api.settings import get_settings

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", "module": "%(name)s"}',
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.CLIENT_INPUT: 400,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INTEGRITY: 409,
    ErrorCategory.TRANSIENT: 503,
}
RETRY_AFTER_SECONDS = 30


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Neurolex API...")
    try:
        settings.validate_production_settings()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    from neurolex_api.purchases.dependencies import get_transaction_verifier

    verifier = get_transaction_verifier()
    if verifier.available:
        logger.info(f"Chain client configured for {settings.chain_name} ({settings.chain_id})")
    else:
        logger.warning("Chain client not configured; purchases will be rejected as unavailable")

    yield
    logger.info("Shutting down Neurolex API...")


# Create FastAPI app
app = FastAPI(
    title="Neurolex API",
    description="Wallet linkage and verified token purchases",
    version="0.1.0",
    lifespan=lifespan,
)

settings = get_settings()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Custom middleware (order matters - last added is first executed)
if settings.rate_limit_enabled:
    from neurolex_api.middleware.rate_limit import RateLimitMiddleware

    app.add_middleware(RateLimitMiddleware)  # Needs the account set by auth
app.add_middleware(AuthMiddleware)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Register routers
app.include_router(wallets.router)
app.include_router(tokens.router)


@app.exception_handler(VerificationError)
async def verification_error_handler(request: Request, exc: VerificationError):
    """Render typed rejections as JSON with a status derived from their category."""
    status_code = STATUS_BY_CATEGORY[exc.category]
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "neurolex-api",
        "version": "0.1.0",
    }


@app.get("/ready")
def readiness_check():
    """Readiness check endpoint (verifies dependencies)."""
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory
    from sqlalchemy import text

    from neurolex_api.db.session import SessionLocal
    from neurolex_api.purchases.dependencies import get_transaction_verifier

    checks = {
        "database": False,
        "migrations": False,
        "chain": False,
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True

        # Check Alembic migrations are at head
        context = MigrationContext.configure(db.connection())
        current_rev = context.get_current_revision()
        alembic_ini_path = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        alembic_cfg = Config(alembic_ini_path)
        alembic_cfg.set_main_option("script_location", os.path.join(os.path.dirname(__file__), "..", "alembic"))
        head_rev = ScriptDirectory.from_config(alembic_cfg).get_current_head()
        if current_rev == head_rev:
            checks["migrations"] = True
        else:
            logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    # A missing chain client degrades purchases but not the rest of the API
    checks["chain"] = get_transaction_verifier().available

    ready = checks["database"] and checks["migrations"]
    if not ready:
        status_label = "not_ready"
    elif not checks["chain"]:
        status_label = "degraded"
    else:
        status_label = "ready"

    return JSONResponse(
        content={"status": status_label, "checks": checks},
        status_code=200 if ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Neurolex API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
