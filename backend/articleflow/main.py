"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from . import models  # noqa: F401  (registers tables on Base.metadata)
from .database import engine, Base, get_db, SessionLocal, DATABASE_URL
from .api import (
    articles_router,
    article_publish_router,
    diagrams_router,
    profile_router,
    publishing_router,
    storage_router,
    trial_router,
)
from .core.config import settings, ConfigurationError, Environment, _DEFAULT_JWT_SECRET
from .core.logging_config import setup_logging
from .middleware.exception_handler import articleflow_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .exceptions import ArticleFlowException
from .services import generation_log

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


# Tables are created on import so every entry point (uvicorn, TestClient)
# sees the same schema.
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the ArticleFlow API."""
    # --- Security validation ---
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        if settings.jwt_secret_key == _DEFAULT_JWT_SECRET:
            if settings.auth_enabled:
                logger.critical(
                    "SECURITY: AUTH_ENABLED=true but JWT_SECRET_KEY is the default. "
                    "Anyone can forge tokens. Set it to the identity provider's JWT secret."
                )
            else:
                logger.warning(
                    "SECURITY: JWT_SECRET_KEY is the default. "
                    "Set the identity provider's JWT secret before enabling auth."
                )

        if not settings.auth_enabled:
            logger.warning(
                "SECURITY: Authentication is disabled (AUTH_ENABLED=false). "
                "Every request runs as the anonymous user."
            )

    if not settings.r2_configured:
        logger.warning("R2 credentials are not set: diagram embedding and uploads will answer 503")
    if not settings.llm_model:
        logger.warning("LLM_MODEL is not set: article generation will answer 503")

    # --- Purge old generation logs ---
    if settings.log_retention_days > 0:
        db = SessionLocal()
        try:
            purged = generation_log.purge_old_entries(db, days=settings.log_retention_days)
            if purged > 0:
                logger.info(f"Purged {purged} generation log entries older than {settings.log_retention_days} days")
        finally:
            db.close()

    yield


app = FastAPI(
    title="ArticleFlow API",
    description=(
        "Backend for AI-assisted technical article generation and publishing. "
        "Articles are stored as Markdown with an HTML rendering; mermaid diagrams "
        "can be rendered and embedded as hosted images before publishing.\n\n"
        "**Authentication:** When `AUTH_ENABLED=true`, every `/api` endpoint requires "
        "a `Bearer` access token issued by the identity provider."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware stack (outermost first: CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(ArticleFlowException, articleflow_exception_handler)

db_type = "PostgreSQL" if DATABASE_URL.startswith("postgresql") else "SQLite"
logger.info(
    "ArticleFlow API started | env=%s | db=%s (%s) | auth=%s | storage=%s",
    settings.environment.value,
    db_type,
    _mask_url(DATABASE_URL),
    "enabled" if settings.auth_enabled else "disabled",
    "r2" if settings.r2_configured else "unconfigured",
)

app.include_router(articles_router)
app.include_router(article_publish_router)
app.include_router(diagrams_router)
app.include_router(publishing_router)
app.include_router(profile_router)
app.include_router(storage_router)
app.include_router(trial_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "ArticleFlow API",
        "version": "1.0.0",
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check returning database status, uptime and article count.

    Never raises: answers ``degraded`` on DB failure so health checks still get a 200.
    """
    db_status = "ok"
    article_count = 0
    try:
        db.execute(text("SELECT 1"))
        article_count = db.execute(text("SELECT COUNT(*) FROM articles")).scalar() or 0
    except Exception:
        logger.exception("Health check database query failed")
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": "1.0.0",
        "article_count": article_count,
    }
