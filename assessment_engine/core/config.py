"""Configuration management for the assessment engine.

This module handles configuration loading and validation using Pydantic
Settings for type safety and environment variable support.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from assessment_engine.utils.logger import setup_logging


class Settings(BaseSettings):
    """Application settings with validation and type hints."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Settings
    APP_NAME: str = Field(default="Assessment Engine", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    APP_ENV: str = Field(
        default="development",
        description="Application environment",
        pattern="^(development|test|staging|production)$",
    )
    APP_DEBUG: bool = Field(default=True, description="Debug mode")
    APP_HOST: str = Field(default="0.0.0.0", description="Application host")
    APP_PORT: int = Field(default=8000, description="Application port", ge=1, le=65535)

    # API Settings
    API_V1_PREFIX: str = Field(default="/api/v1", description="API v1 prefix")
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )
    ENABLE_API_DOCS: bool = Field(default=True, description="Enable API documentation")

    # Logging Configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    LOG_FORMAT: str = Field(
        default="text", description="Log format", pattern="^(json|text)$"
    )
    LOG_DIR: Optional[str] = Field(
        default=None, description="Directory for rotating log files"
    )

    # Scoring Configuration
    SCORE_DECIMAL_PLACES: int = Field(
        default=1, description="Decimal places for reported percentages", ge=0, le=6
    )

    # Lifecycle Configuration
    URGENCY_CRITICAL_DAYS: int = Field(
        default=1, description="Remaining days below which an assignment is critical", ge=0
    )
    URGENCY_WARNING_DAYS: int = Field(
        default=3, description="Remaining days below which an assignment is a warning", ge=0
    )
    COMPLETED_RESULTS_RETAINED: int = Field(
        default=10000, description="Completion results kept to answer retried submissions", ge=1
    )

    # Activity Analytics Configuration
    TIMING_FAST_THRESHOLD_MS: int = Field(
        default=10000, description="Question time below which an answer is fast", ge=0
    )
    TIMING_SLOW_THRESHOLD_MS: int = Field(
        default=30000, description="Question time from which an answer is slow", ge=0
    )
    ACTIVITY_UNMATCHED_CLOSE_TOLERANCE: int = Field(
        default=0, description="Unmatched close events tolerated in one activity log", ge=0
    )
    PACING_CONSISTENCY_THRESHOLD: int = Field(
        default=70, description="Consistency percentage above which pacing is consistent", ge=0, le=100
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings after all fields are set."""
        if self.URGENCY_CRITICAL_DAYS >= self.URGENCY_WARNING_DAYS:
            raise ValueError("URGENCY_CRITICAL_DAYS must be lower than URGENCY_WARNING_DAYS")

        if self.TIMING_FAST_THRESHOLD_MS >= self.TIMING_SLOW_THRESHOLD_MS:
            raise ValueError("TIMING_FAST_THRESHOLD_MS must be lower than TIMING_SLOW_THRESHOLD_MS")

        if self.APP_ENV == "production":
            self.APP_DEBUG = False
            self.LOG_LEVEL = "INFO" if self.LOG_LEVEL == "DEBUG" else self.LOG_LEVEL

        return self

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV == "production"

    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.APP_ENV == "test"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    settings = Settings()

    setup_logging(
        environment=settings.APP_ENV,
        log_level=settings.LOG_LEVEL,
        log_format=settings.LOG_FORMAT,
        log_dir=settings.LOG_DIR,
    )

    return settings
