"""Base Pydantic schemas for the assessment engine API.

This module provides the response envelope shared by all endpoints.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from assessment_engine.utils.datetime_utils import utc_now

# Generic type variable for data
DataType = TypeVar('DataType')


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = {
        "use_enum_values": True,
        "populate_by_name": True,
        "str_strip_whitespace": True,
    }


class ResponseMetadata(BaseSchema):
    """Metadata included in API responses."""

    request_id: Optional[str] = Field(None, description="Unique request identifier")
    timestamp: datetime = Field(default_factory=utc_now, description="Response timestamp")
    version: str = Field(default="1.0", description="API version")


class BaseResponse(BaseSchema, Generic[DataType]):
    """Base response schema for all API endpoints."""

    success: bool = Field(..., description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Human-readable message")
    data: Optional[DataType] = Field(None, description="Response data")
    meta: Optional[ResponseMetadata] = Field(None, description="Response metadata")

    model_config = {
        **BaseSchema.model_config,
        "json_schema_extra": {
            "example": {
                "success": True,
                "message": "Operation completed successfully",
                "data": {},
                "meta": {
                    "request_id": "3f0c7c52-5d1e-4f0e-9d8b-8d7c2a1f4e11",
                    "timestamp": "2024-01-01T12:00:00Z",
                    "version": "1.0"
                }
            }
        }
    }


class SuccessResponse(BaseResponse[DataType]):
    """Success response schema."""

    success: bool = Field(default=True, description="Always true for success responses")

    @classmethod
    def create(
        cls,
        data: DataType,
        message: Optional[str] = None,
        meta: Optional[ResponseMetadata] = None
    ) -> "SuccessResponse[DataType]":
        """Create a success response.

        Args:
            data: Response data
            message: Optional success message
            meta: Optional metadata

        Returns:
            SuccessResponse: Success response instance
        """
        return cls(
            success=True,
            data=data,
            message=message,
            meta=meta or ResponseMetadata()
        )


class HealthCheckResponse(BaseSchema):
    """Health check response."""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(default_factory=utc_now, description="Check timestamp")


def create_success_response(
    data: Any,
    message: Optional[str] = None,
    request_id: Optional[str] = None
) -> SuccessResponse:
    """Create a success response with metadata.

    Args:
        data: Response data
        message: Optional success message
        request_id: Optional request ID

    Returns:
        SuccessResponse: Success response
    """
    meta = ResponseMetadata(request_id=request_id)
    return SuccessResponse.create(data=data, message=message, meta=meta)
