"""
Main FastAPI application for the Jirung elder-care assistant.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .routes import chat, handoff, admin
from .services import get_services, initialize_services
from .middleware.metrics import MetricsMiddleware, metrics_endpoint
from .middleware.rate_limit import RateLimitMiddleware
from config.settings import configure_logging, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Jirung assistant starting up...")

    # Initialize database (if configured)
    db_ready = False
    if settings.database_url:
        try:
            from database.session import init_db
            await init_db(settings.database_url)
            db_ready = True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Database init failed (events kept in memory): {e}")

    initialize_services()
    logger.info("Jirung assistant ready")
    yield
    logger.info("Jirung assistant shutting down...")

    if db_ready:
        from database.session import close_db
        await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        description="Elder-care assistant: topic triage, human handoff and conversation analytics.",
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics middleware
    app.add_middleware(MetricsMiddleware)

    # Rate limiting middleware
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
    )

    app.include_router(chat.router, prefix="/api/v1", tags=["Chat"])
    app.include_router(handoff.router, prefix="/api/v1", tags=["Handoff"])
    app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])

    # --- Prometheus metrics endpoint ---
    app.get("/metrics", tags=["Monitoring"])(metrics_endpoint)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "service": settings.api_title,
            "version": settings.api_version,
            "status": "operational",
            "docs": "/docs",
        }

    # Health check
    @app.get("/health")
    async def health():
        services = get_services()
        return {
            "status": "healthy" if services.is_ready else "degraded",
            "services": services.health(),
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
