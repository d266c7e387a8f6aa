"""Main FastAPI application module for the assessment engine.

This module creates and configures the FastAPI application instance with
middleware, routers and the mapping of engine errors to HTTP responses.
"""

import time
from contextlib import asynccontextmanager
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from assessment_engine.api.middleware.request_id import RequestIDMiddleware, get_request_id
from assessment_engine.core.config import get_settings
from assessment_engine.utils.exceptions import (
    AssessmentError,
    InvalidQuestionScale,
    InvalidTransition,
    MalformedLog,
    UnknownActivityType,
    ValidationError,
    create_error_response,
    handle_exception_chain,
)
from assessment_engine.utils.logger import get_api_logger

# Initialize settings and logger
settings = get_settings()
logger = get_api_logger()

# HTTP status per engine error, most specific class first
ERROR_STATUS_CODES: Dict[Type[AssessmentError], int] = {
    InvalidTransition: status.HTTP_409_CONFLICT,
    MalformedLog: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidQuestionScale: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnknownActivityType: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


def status_code_for(error: AssessmentError) -> int:
    """HTTP status code for an engine error."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle events.

    Args:
        app: FastAPI application instance
    """
    logger.info(
        "Starting Assessment Engine API",
        extra={
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
            "cors_origins": settings.CORS_ORIGINS,
            "api_docs": settings.ENABLE_API_DOCS,
        }
    )

    yield

    logger.info("Assessment Engine API shut down")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Assessment lifecycle, scoring and activity analytics engine",
        version=settings.APP_VERSION,
        docs_url=f"{settings.API_V1_PREFIX}/docs" if settings.ENABLE_API_DOCS else None,
        redoc_url=f"{settings.API_V1_PREFIX}/redoc" if settings.ENABLE_API_DOCS else None,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json" if settings.ENABLE_API_DOCS else None,
        lifespan=lifespan,
    )

    app = register_exception_handlers(app)
    app = register_middleware(app)
    app = register_routers(app)

    return app


def register_exception_handlers(app: FastAPI) -> FastAPI:
    """Register custom exception handlers.

    Args:
        app: FastAPI application instance

    Returns:
        FastAPI: Application with exception handlers registered
    """

    @app.exception_handler(AssessmentError)
    async def assessment_exception_handler(
        request: Request, exc: AssessmentError
    ) -> JSONResponse:
        """Handle engine errors."""
        request_id = get_request_id()
        status_code = status_code_for(exc)

        logger.warning(
            f"Engine error: {exc.message}",
            extra={
                "request_id": request_id,
                "status_code": status_code,
                "error_code": exc.error_code,
                "path": request.url.path,
                "exception_chain": handle_exception_chain(exc),
            }
        )

        return JSONResponse(
            status_code=status_code,
            content=create_error_response(
                exc,
                include_details=not settings.is_production(),
                request_id=request_id,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions."""
        request_id = get_request_id()

        logger.warning(
            f"HTTP exception: {exc.detail}",
            extra={
                "request_id": request_id,
                "status_code": exc.status_code,
                "path": request.url.path,
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": {
                    "code": exc.status_code,
                    "message": exc.detail,
                    "request_id": request_id,
                }
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request body validation errors."""
        request_id = get_request_id()

        logger.warning(
            "Validation error",
            extra={
                "request_id": request_id,
                "error_count": len(exc.errors()),
                "path": request.url.path,
            }
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": {
                    "code": "REQUEST_VALIDATION_ERROR",
                    "message": "Validation error",
                    "details": _jsonable_errors(exc),
                    "request_id": request_id,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle uncaught exceptions."""
        request_id = get_request_id()

        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
                "path": request.url.path,
            },
            exc_info=True,
        )

        # Don't expose internal errors in production
        if settings.is_production():
            message = "An internal error occurred"
        else:
            message = str(exc)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": message,
                    "request_id": request_id,
                }
            },
        )

    return app


def _jsonable_errors(exc: RequestValidationError):
    """Validation errors without the non-serializable ``ctx``/``input`` parts."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def register_middleware(app: FastAPI) -> FastAPI:
    """Register application middleware.

    Args:
        app: FastAPI application instance

    Returns:
        FastAPI: Application with middleware registered
    """
    # Executed in reverse order of registration
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time to response headers."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response

    return app


def register_routers(app: FastAPI) -> FastAPI:
    """Register API routers.

    Args:
        app: FastAPI application instance

    Returns:
        FastAPI: Application with routers registered
    """
    # Import routers here to avoid circular imports
    from assessment_engine.routers import assessments, health

    app.include_router(health.router)
    app.include_router(assessments.router, prefix=settings.API_V1_PREFIX)

    return app


# Create the application instance
app = create_application()


# Export the app instance
__all__ = ["app", "create_application", "status_code_for"]
