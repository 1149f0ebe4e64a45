"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Exam Regrader API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Scoring
    # Points awarded per correctly answered question when regrading.
    POINTS_PER_QUESTION: float = Field(
        default=5.0,
        gt=0.0,
        description="Points awarded for each correct answer",
    )

    # Item analysis
    # Fraction of students in each of the upper and lower groups used for the
    # classical discrimination index (Kelley's 27% rule).
    DISCRIMINATION_GROUP_FRACTION: float = Field(
        default=0.27,
        gt=0.0,
        le=0.5,
        description="Size of the upper/lower groups as a fraction of all students",
    )
    # Minimum selection rate for a distractor to count as functional.
    FUNCTIONAL_DISTRACTOR_THRESHOLD: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Selection rate at or above which a distractor is functional",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_log_level(self) -> Self:
        """Reject log levels the logging module does not know."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.LOG_LEVEL.upper() not in valid:
            raise ValueError(
                f"LOG_LEVEL must be one of {sorted(valid)}, got {self.LOG_LEVEL!r}"
            )
        return self


settings = Settings()
