"""API routers for the assessment engine.

This module provides the FastAPI routers that expose the engine over HTTP.
"""

from assessment_engine.routers.assessments import router as assessments_router
from assessment_engine.routers.health import router as health_router

__all__ = [
    "assessments_router",
    "health_router",
]
