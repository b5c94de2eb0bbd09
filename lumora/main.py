"""
Lumora FastAPI application entry point.

Engine: code issuance -> verification -> certificate forensics -> hotspot intelligence
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lumora import __version__
from lumora.config import get_settings
from lumora.db.session import check_db_connection, engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Lumora starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        # Fail fast on a broken deployment rather than at the first hotspot run
        try:
            from lumora.prompts.loader import load_prompt

            load_prompt("hotspot_analysis_v1")
        except FileNotFoundError as e:
            logger.critical("Prompt template missing at startup: %s", e)
            raise

        yield
    finally:
        logger.info("Lumora shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Mount API routes
    from lumora.api.admin import router as admin_router
    from lumora.api.forensics import router as forensics_router
    from lumora.api.manufacturers import router as manufacturers_router
    from lumora.api.verify import router as verify_router

    app.include_router(verify_router, prefix="/api/verify", tags=["verify"])
    app.include_router(manufacturers_router, prefix="/api/manufacturers", tags=["manufacturers"])
    app.include_router(forensics_router, prefix="/api/forensics", tags=["forensics"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])

    # Internal job endpoints (cron/scripts, token-authenticated)
    from lumora.api.internal import router as internal_router

    app.include_router(internal_router, tags=["internal"])

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
            }
        except Exception:
            from fastapi.responses import JSONResponse

            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
