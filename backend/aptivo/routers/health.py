"""
Health Check Endpoints

Endpoints:
- GET /api/health - Basic health check
"""

from fastapi import APIRouter, Depends

from aptivo.config import settings
from aptivo.dependencies import AppServices, get_services

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check(services: AppServices = Depends(get_services)):
    """Report that the API is up and which backend it is serving."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "backend": "mock" if services.mock_store is not None else "remote",
    }
