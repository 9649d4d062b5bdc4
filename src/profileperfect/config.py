"""Application configuration."""

import os

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    storage_bucket: str = "profileperfect-uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    openai_vision_model: str = "gpt-5.1-mini"
    openai_image_model: str = "gpt-image-1-mini"
    demo_image_base_url: str = "https://placehold.co/profileperfect"
    worker_concurrency: int = 4
    generation_timeout_seconds: float = 180.0
    max_in_flight_seconds: float = 600.0
    reaper_interval_seconds: float = 60.0
    refund_on_failure: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_job_timeouts(self) -> "Settings":
        if self.max_in_flight_seconds <= self.generation_timeout_seconds:
            raise ValueError(
                "max_in_flight_seconds must exceed generation_timeout_seconds"
            )
        return self
