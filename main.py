"""Main entry point for the Assessment Engine API.

This module runs the FastAPI application with uvicorn.
"""

import uvicorn

from assessment_engine.core.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "assessment_engine.api.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_ENV == "development",
        log_config=None,  # Use our custom logging
        workers=1 if settings.APP_ENV == "development" else 4,
    )
