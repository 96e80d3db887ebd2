"""
OKR Progress FastAPI Application

Main entry point for the progress & pace computation API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.utils import success_response
from okr.config import settings
from okr.dependencies import init_progress_services, reset_progress_services
from okr.routers import progress_router

APP_VERSION = "1.0.0"

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format=settings.LOG_FORMAT,
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Validates settings and initializes services on startup.
    """
    # Startup
    logger.info("Starting OKR Progress API...")

    settings.validate_required()
    init_progress_services(settings)
    logger.info("Progress services initialized")

    yield

    # Shutdown
    reset_progress_services()
    logger.info("OKR Progress API shut down complete.")


# =============================================================================
# FastAPI Application
# =============================================================================
app = FastAPI(
    title="OKR Progress API",
    description="Key result progress, pace and forecast computation",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
)

# =============================================================================
# CORS Middleware
# =============================================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Include Routers
# =============================================================================
app.include_router(progress_router, prefix=settings.API_PREFIX, tags=["Progress"])


# =============================================================================
# Health Check Endpoint
# =============================================================================
@app.get("/health", tags=["Health"])
async def health():
    """
    Health check endpoint.

    Returns the status of the API.
    """
    return success_response({
        "status": "ok",
        "version": APP_VERSION,
    })


# =============================================================================
# Run with Uvicorn
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development(),
    )
