# /bealigned/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from bealigned.config.settings import settings
from bealigned.services.ai_service import ai_service
from bealigned.utils.logging import setup_logging

# Application lifespan: logging setup on startup, a status line on shutdown.
# The reflection engine holds no state between requests, so there is nothing
# to load or flush.

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()

    logger.info(f"Application starting up in '{settings.environment}' mode...")
    if not ai_service.is_configured:
        logger.warning("No text-generation provider configured; every turn will return the fallback reply.")
    logger.info("Application startup complete. Ready to accept requests.")

    yield  # Application is now running

    logger.info("Application shutting down...")
