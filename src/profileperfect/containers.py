"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from profileperfect.adapters.demo_image_client import DemoImageClient
from profileperfect.adapters.openai_image_client import OpenAIImageClient
from profileperfect.adapters.supabase_credit_repository import SupabaseCreditRepository
from profileperfect.adapters.supabase_image_repository import SupabaseImageRepository
from profileperfect.adapters.supabase_job_repository import SupabaseJobRepository
from profileperfect.adapters.supabase_storage_client import SupabaseStorageClient
from profileperfect.config import Settings
from profileperfect.services.credits import CreditService
from profileperfect.services.gallery import GalleryService
from profileperfect.services.images import ImageClient, ImageGenerationService
from profileperfect.services.orchestrator import JobOrchestrator
from profileperfect.services.status import StatusService
from profileperfect.services.uploads import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    credit_service: CreditService
    status_service: StatusService
    gallery_service: GalleryService
    upload_service: UploadService
    orchestrator: JobOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    job_repository = SupabaseJobRepository(supabase_client)
    image_repository = SupabaseImageRepository(supabase_client)
    credit_service = CreditService(SupabaseCreditRepository(supabase_client))
    storage = SupabaseStorageClient(
        client=supabase_client, bucket=resolved_settings.storage_bucket
    )
    openai_client: OpenAIImageClient | None = None
    image_client: ImageClient
    if resolved_settings.openai_api_key:
        openai_client = OpenAIImageClient.create(
            api_key=resolved_settings.openai_api_key,
            vision_model=resolved_settings.openai_vision_model,
            image_model=resolved_settings.openai_image_model,
            base_url=resolved_settings.openai_base_url,
        )
        image_client = openai_client
    else:
        image_client = DemoImageClient(base_url=resolved_settings.demo_image_base_url)
    gallery_service = GalleryService(
        job_repository=job_repository, image_repository=image_repository
    )
    orchestrator = JobOrchestrator(
        job_repository=job_repository,
        image_repository=image_repository,
        credit_service=credit_service,
        gallery_service=gallery_service,
        generation_service=ImageGenerationService(client=image_client, storage=storage),
        concurrency=resolved_settings.worker_concurrency,
        generation_timeout_seconds=resolved_settings.generation_timeout_seconds,
        max_in_flight_seconds=resolved_settings.max_in_flight_seconds,
        reaper_interval_seconds=resolved_settings.reaper_interval_seconds,
        refund_on_failure=resolved_settings.refund_on_failure,
    )

    async def close_resources() -> None:
        if openai_client is not None:
            await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        credit_service=credit_service,
        status_service=StatusService(
            job_repository=job_repository, image_repository=image_repository
        ),
        gallery_service=gallery_service,
        upload_service=UploadService(
            storage=storage, max_upload_bytes=resolved_settings.max_upload_bytes
        ),
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
