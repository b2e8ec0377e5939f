"""Health check and root endpoints."""

import structlog
from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services

# Initialize logger
logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint."""
    logger.info("root_endpoint_accessed")
    return {"message": "Welcome to the gistnotes API"}


@router.get("/health")
async def health(services: Services = Depends(get_services)):
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "service": "gistnotes-api",
        "syncConfigured": services.notes_sync.is_configured,
        "tokensLoaded": services.tokens.initialized,
    }
