"""Tests for container wiring."""

import asyncio

import pytest
from pydantic import ValidationError

from profileperfect.adapters.demo_image_client import DemoImageClient
from profileperfect.adapters.openai_image_client import OpenAIImageClient
from profileperfect.config import Settings
from profileperfect.containers import build_container
from tests.conftest import SERVICE_KEY


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.status_service is not None
    assert container.upload_service.max_upload_bytes == settings.max_upload_bytes
    assert container.orchestrator.reaper_interval_seconds == 0
    assert isinstance(
        container.orchestrator.generation_service.client, DemoImageClient
    )
    asyncio.run(container.close_resources())


def test_build_container_uses_openai_when_configured(settings: Settings) -> None:
    configured = settings.model_copy(
        update={"openai_api_key": "sk-test", "refund_on_failure": True}
    )

    container = build_container(configured)

    assert isinstance(
        container.orchestrator.generation_service.client, OpenAIImageClient
    )
    assert container.orchestrator.refund_on_failure is True
    asyncio.run(container.close_resources())


def test_settings_reject_reaper_window_within_generation_timeout() -> None:
    with pytest.raises(ValidationError, match="max_in_flight_seconds"):
        Settings(
            supabase_url="https://example.supabase.co",
            supabase_service_key=SERVICE_KEY,
            admin_token="admin-token",
            generation_timeout_seconds=600,
            max_in_flight_seconds=600,
        )


def test_default_reaper_window_outlasts_generation_timeout(settings: Settings) -> None:
    assert settings.max_in_flight_seconds > settings.generation_timeout_seconds
