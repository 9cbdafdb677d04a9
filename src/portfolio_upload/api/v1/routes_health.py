"""Health check endpoint for the Portfolio Upload API."""

from fastapi import APIRouter

from portfolio_upload.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns service status, name, version and the configured storage backend.
    Does not touch storage or the reporting service.
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "storage_backend": settings.STORAGE_BACKEND,
        "reporting_enabled": settings.reporting_enabled,
    }
