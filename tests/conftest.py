"""Shared test fixtures."""

import asyncio
import itertools
import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest

from profileperfect.config import Settings
from profileperfect.containers import AppContainer
from profileperfect.domain.errors import AdapterError
from profileperfect.domain.generation import GeneratedImage
from profileperfect.domain.jobs import (
    ImageRecord,
    JobKind,
    JobRecord,
    JobStatus,
    NewImage,
)
from profileperfect.services.credits import CreditRepository, CreditService
from profileperfect.services.gallery import GalleryService
from profileperfect.services.images import ImageClient, ImageGenerationService
from profileperfect.services.jobs import ImageRepository, JobRepository
from profileperfect.services.orchestrator import JobOrchestrator
from profileperfect.services.status import StatusService
from profileperfect.services.uploads import StorageClient, UploadService

# A syntactically valid JWT so supabase.create_client accepts it.
SERVICE_KEY = (
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
    "eyJyb2xlIjoic2VydmljZV9yb2xlIn0."
    "c2lnbmF0dXJl"
)

REFERENCE_IMAGES = [
    f"https://uploads.test/user-1/ref-{index}.jpg" for index in range(5)
]


@dataclass
class InMemoryCreditRepository(CreditRepository):
    """In-memory credit ledger for tests."""

    balances: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get_balance(self, user_id: str) -> int:
        return self.balances.get(user_id, 0)

    def try_debit(self, user_id: str, amount: int) -> bool:
        with self._lock:
            balance = self.balances.get(user_id, 0)
            if balance < amount:
                return False
            self.balances[user_id] = balance - amount
            return True

    def credit(self, user_id: str, amount: int) -> int:
        with self._lock:
            self.balances[user_id] = self.balances.get(user_id, 0) + amount
            return self.balances[user_id]


@dataclass
class InMemoryJobRepository(JobRepository):
    """In-memory job repository that also records every status change."""

    jobs: dict[int, JobRecord] = field(default_factory=dict)
    history: dict[int, list[JobStatus]] = field(default_factory=dict)
    fail_on_create: bool = False
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create_job(  # noqa: PLR0913
        self,
        owner_id: str,
        kind: JobKind,
        name: str,
        input_refs: list[str],
        credits_charged: int,
        params: dict[str, object],
        parent_image_id: int | None = None,
    ) -> JobRecord:
        if self.fail_on_create:
            raise RuntimeError("database unavailable")
        now = datetime.now(tz=UTC)
        with self._lock:
            job = JobRecord(
                id=next(self._ids),
                owner_id=owner_id,
                kind=kind,
                status=JobStatus.PROCESSING,
                name=name,
                input_refs=list(input_refs),
                credits_charged=credits_charged,
                params=dict(params),
                parent_image_id=parent_image_id,
                created_at=now,
                updated_at=now,
            )
            self.jobs[job.id] = job
            self.history[job.id] = [JobStatus.PROCESSING]
        return job

    def get_job(self, job_id: int) -> JobRecord | None:
        return self.jobs.get(job_id)

    def transition_status(
        self, job_id: int, from_status: JobStatus, to_status: JobStatus
    ) -> bool:
        with self._lock:
            job = self.jobs.get(job_id)
            if job is None or job.status != from_status:
                return False
            self.jobs[job_id] = replace(
                job, status=to_status, updated_at=datetime.now(tz=UTC)
            )
            self.history[job_id].append(to_status)
            return True

    def list_jobs_for_owner(self, owner_id: str, limit: int) -> list[JobRecord]:
        owned = [job for job in self.jobs.values() if job.owner_id == owner_id]
        return sorted(owned, key=lambda job: job.id, reverse=True)[:limit]

    def list_stale_jobs(
        self, statuses: set[JobStatus], updated_before: datetime
    ) -> list[JobRecord]:
        return [
            job
            for job in self.jobs.values()
            if job.status in statuses and job.updated_at < updated_before
        ]

    def add_job(self, owner_id: str, kind: JobKind = JobKind.GENERATION) -> JobRecord:
        """Create a job directly, bypassing the orchestrator."""
        return self.create_job(
            owner_id=owner_id,
            kind=kind,
            name="seed",
            input_refs=[],
            credits_charged=0,
            params={},
        )


@dataclass
class InMemoryImageRepository(ImageRepository):
    """In-memory image repository for tests."""

    images: dict[int, ImageRecord] = field(default_factory=dict)
    fail_on_create: bool = False
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create_images(self, job_id: int, images: list[NewImage]) -> list[ImageRecord]:
        if self.fail_on_create:
            raise RuntimeError("images table unavailable")
        now = datetime.now(tz=UTC)
        created = []
        with self._lock:
            for image in images:
                record = ImageRecord(
                    id=next(self._ids),
                    job_id=job_id,
                    url=image.url,
                    created_at=now,
                    parent_image_id=image.parent_image_id,
                    style_preset=image.style_preset,
                    background_preset=image.background_preset,
                    source=image.source,
                )
                self.images[record.id] = record
                created.append(record)
        return created

    def get_image(self, image_id: int) -> ImageRecord | None:
        return self.images.get(image_id)

    def list_images_for_job(self, job_id: int) -> list[ImageRecord]:
        owned = [image for image in self.images.values() if image.job_id == job_id]
        return sorted(
            owned, key=lambda image: (image.created_at, image.id), reverse=True
        )

    def set_favorited(self, image_id: int, favorited: bool) -> ImageRecord | None:
        image = self.images.get(image_id)
        if image is None:
            return None
        updated = replace(image, favorited=favorited)
        self.images[image_id] = updated
        return updated

    def delete_images(self, image_ids: list[int]) -> None:
        with self._lock:
            for image_id in image_ids:
                self.images.pop(image_id, None)


@dataclass
class FakeImageClient(ImageClient):
    """Fake image backend with configurable failures and latency."""

    identity: str = "Oval face, brown eyes, short dark hair."
    delay_seconds: float = 0.0
    error: Exception | None = None
    raw_bytes: bytes | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def describe_identity(
        self, *, reference_images: list[str], prompt: str
    ) -> str:
        self.calls.append({"call": "identity", "references": reference_images})
        return self.identity

    async def generate(
        self, *, prompt: str, count: int, size: str, quality: str
    ) -> list[GeneratedImage]:
        self.calls.append(
            {"call": "generate", "prompt": prompt, "count": count, "size": size}
        )
        await self._maybe_fail()
        if self.raw_bytes is not None:
            return [GeneratedImage(content=self.raw_bytes) for _ in range(count)]
        return [
            GeneratedImage(url=f"https://images.test/headshot-{index + 1}.png")
            for index in range(count)
        ]

    async def edit(self, *, source_url: str, prompt: str) -> list[GeneratedImage]:
        self.calls.append({"call": "edit", "source_url": source_url, "prompt": prompt})
        await self._maybe_fail()
        return [GeneratedImage(url="https://images.test/retouched-1.png")]

    async def _maybe_fail(self) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error


@dataclass
class FakeStorageClient(StorageClient):
    """Storage fake that records writes."""

    files: dict[str, bytes] = field(default_factory=dict)

    async def put(self, content: bytes, filename: str, content_type: str) -> str:
        self.files[filename] = content
        return f"https://storage.test/{filename}"


@dataclass
class Harness:
    """All collaborators of an orchestrator, for direct inspection."""

    credits: InMemoryCreditRepository
    jobs: InMemoryJobRepository
    images: InMemoryImageRepository
    client: FakeImageClient
    storage: FakeStorageClient
    credit_service: CreditService
    gallery_service: GalleryService
    status_service: StatusService
    orchestrator: JobOrchestrator


def build_harness(
    client: FakeImageClient | None = None,
    *,
    balances: dict[str, int] | None = None,
    timeout_seconds: float = 5.0,
    refund_on_failure: bool = False,
    concurrency: int = 2,
) -> Harness:
    """Wire an orchestrator over in-memory collaborators."""
    credits = InMemoryCreditRepository(balances=dict(balances or {}))
    jobs = InMemoryJobRepository()
    images = InMemoryImageRepository()
    image_client = client or FakeImageClient()
    storage = FakeStorageClient()
    credit_service = CreditService(credits)
    gallery_service = GalleryService(job_repository=jobs, image_repository=images)
    orchestrator = JobOrchestrator(
        job_repository=jobs,
        image_repository=images,
        credit_service=credit_service,
        gallery_service=gallery_service,
        generation_service=ImageGenerationService(client=image_client, storage=storage),
        concurrency=concurrency,
        generation_timeout_seconds=timeout_seconds,
        reaper_interval_seconds=0,
        refund_on_failure=refund_on_failure,
    )
    return Harness(
        credits=credits,
        jobs=jobs,
        images=images,
        client=image_client,
        storage=storage,
        credit_service=credit_service,
        gallery_service=gallery_service,
        status_service=StatusService(job_repository=jobs, image_repository=images),
        orchestrator=orchestrator,
    )


def seed_image(harness: Harness, owner_id: str) -> ImageRecord:
    """Store a completed generation job with one image for owner_id."""
    job = harness.jobs.add_job(owner_id)
    harness.jobs.transition_status(job.id, JobStatus.PROCESSING, JobStatus.GENERATING)
    harness.jobs.transition_status(job.id, JobStatus.GENERATING, JobStatus.COMPLETED)
    return harness.images.create_images(
        job.id, [NewImage(url=f"https://images.test/{owner_id}/source.png")]
    )[0]


def failing_client() -> FakeImageClient:
    """Image client whose calls raise an adapter error."""
    return FakeImageClient(error=AdapterError("model unavailable"))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=SERVICE_KEY,
        admin_token="admin-token",
        reaper_interval_seconds=0,
    )


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def harness(image_client: FakeImageClient) -> Harness:
    return build_harness(image_client, balances={"user-1": 10})


@pytest.fixture
def container(settings: Settings, harness: Harness) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        credit_service=harness.credit_service,
        status_service=harness.status_service,
        gallery_service=harness.gallery_service,
        upload_service=UploadService(storage=harness.storage),
        orchestrator=harness.orchestrator,
        close_resources=close_resources,
    )
