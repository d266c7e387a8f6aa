"""Health check route for the assessment engine API."""

from fastapi import APIRouter

from assessment_engine.core.config import get_settings
from assessment_engine.schemas.base import HealthCheckResponse

router = APIRouter(tags=["Health"])
settings = get_settings()


@router.get("/health", response_model=HealthCheckResponse, summary="Basic health check")
async def health_check() -> HealthCheckResponse:
    """Basic health check endpoint.

    The engine has no external dependencies, so being able to answer is
    being healthy.
    """
    return HealthCheckResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
    )
