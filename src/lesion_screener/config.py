"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    inference_backend: str = "http"
    inference_base_url: str = "http://localhost:8080"
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    backend_timeout_seconds: float = Field(default=30.0, gt=0.0)
    calibration_floor: float = Field(default=0.79, gt=0.0, le=1.0)
    max_predictions: int | None = Field(default=None, ge=1)
    max_image_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    report_title: str = "Skin Lesion Analysis Report"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
