"""Job orchestration: charge credits, create jobs and drive them to completion."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from profileperfect.domain.generation import ImageResult
from profileperfect.domain.jobs import (
    IN_FLIGHT_STATUSES,
    ImageRecord,
    JobKind,
    JobRecord,
    JobStatus,
    NewImage,
    can_transition,
    ensure_transition,
    working_status,
)
from profileperfect.domain.requests import GenerationRequest, RetouchRequest
from profileperfect.services.credits import CreditService
from profileperfect.services.gallery import GalleryService
from profileperfect.services.images import ImageGenerationService
from profileperfect.services.jobs import ImageRepository, JobRepository
from profileperfect.services.workers import JobWorkerPool

_logger = logging.getLogger(__name__)

ESTIMATED_DURATIONS = {
    JobKind.GENERATION: timedelta(seconds=120),
    JobKind.RETOUCH: timedelta(seconds=60),
}


@dataclass(frozen=True)
class JobTicket:
    """Everything a worker needs to run one job."""

    job_id: int
    owner_id: str
    request: GenerationRequest | RetouchRequest
    credits_charged: int
    source_url: str | None = None

    @property
    def kind(self) -> JobKind:
        """Kind of the job being run."""
        return JobKind(self.request.kind)


@dataclass(frozen=True)
class SubmissionReceipt:
    """Returned to the caller as soon as a job is accepted."""

    job: JobRecord
    estimated_completion: datetime


@dataclass
class JobOrchestrator:
    """Turns validated requests into jobs and runs them in the background."""

    job_repository: JobRepository
    image_repository: ImageRepository
    credit_service: CreditService
    gallery_service: GalleryService
    generation_service: ImageGenerationService
    concurrency: int = 4
    generation_timeout_seconds: float = 180.0
    max_in_flight_seconds: float = 600.0
    reaper_interval_seconds: float = 60.0
    refund_on_failure: bool = False
    pool: JobWorkerPool[JobTicket] = field(init=False)
    _reaper_task: asyncio.Task | None = field(init=False, default=None, repr=False)
    _in_flight: set[int] = field(init=False, default_factory=set, repr=False)

    def __post_init__(self) -> None:
        self.pool = JobWorkerPool(
            handler=self.run_job, concurrency=self.concurrency, name="generation"
        )

    async def start(self) -> None:
        """Start the worker pool and the periodic stale-job sweep."""
        await self.pool.start()
        if self._reaper_task is None and self.reaper_interval_seconds > 0:
            self._reaper_task = asyncio.create_task(
                self._reap_periodically(), name="stale-job-reaper"
            )

    async def stop(self) -> None:
        """Stop background work. Queued jobs resume on the next start."""
        if self._reaper_task is not None:
            self._reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reaper_task
            self._reaper_task = None
        await self.pool.stop()

    async def submit(
        self, owner_id: str, request: GenerationRequest | RetouchRequest
    ) -> SubmissionReceipt:
        """Charge the owner, create a job and queue it for processing."""
        required = self.credit_service.required_credits(request)
        self.credit_service.ensure_available(owner_id, required)

        source_url = None
        parent_image_id = None
        if isinstance(request, RetouchRequest):
            source = self.gallery_service.get_owned_image(
                owner_id, request.source_image_id
            )
            source_url = source.url
            parent_image_id = source.id
            input_refs = [source.url]
        else:
            input_refs = list(request.reference_images)

        self.credit_service.charge(owner_id, required)
        try:
            job = self.job_repository.create_job(
                owner_id=owner_id,
                kind=JobKind(request.kind),
                name=_job_name(request),
                input_refs=input_refs,
                credits_charged=required,
                params=request.model_dump(mode="json", exclude={"kind"}),
                parent_image_id=parent_image_id,
            )
        except Exception:
            self.credit_service.refund(owner_id, required)
            raise

        self._in_flight.add(job.id)
        self.pool.enqueue(
            JobTicket(
                job_id=job.id,
                owner_id=owner_id,
                request=request,
                credits_charged=required,
                source_url=source_url,
            )
        )
        _logger.info(
            "Queued %s job %s for user %s (%s credits)",
            job.kind,
            job.id,
            owner_id,
            required,
        )
        return SubmissionReceipt(
            job=job,
            estimated_completion=datetime.now(tz=UTC) + ESTIMATED_DURATIONS[job.kind],
        )

    async def run_job(self, ticket: JobTicket) -> None:
        """Drive one job to a terminal state. Never raises."""
        working = working_status(ticket.kind)
        current = JobStatus.PROCESSING
        stored: list[ImageRecord] = []
        try:
            started = await asyncio.to_thread(
                self._transition, ticket, JobStatus.PROCESSING, working
            )
            if not started:
                _logger.warning(
                    "Job %s is no longer processing; skipping", ticket.job_id
                )
                return
            current = working
            _logger.info("Started %s job %s", ticket.kind, ticket.job_id)

            results = await asyncio.wait_for(
                self._call_backend(ticket), timeout=self.generation_timeout_seconds
            )
            if not await asyncio.to_thread(self._has_status, ticket, working):
                _logger.warning(
                    "Job %s left %s during generation; discarding %s results",
                    ticket.job_id,
                    working,
                    len(results),
                )
                return
            stored = await asyncio.to_thread(
                self.image_repository.create_images,
                ticket.job_id,
                _new_images(ticket, results),
            )
            completed = await asyncio.to_thread(
                self._transition, ticket, working, JobStatus.COMPLETED
            )
            if completed:
                _logger.info(
                    "Completed job %s with %s images", ticket.job_id, len(results)
                )
            else:
                _logger.warning(
                    "Job %s left %s before it could complete", ticket.job_id, working
                )
                await asyncio.to_thread(self._discard_images, ticket, stored)
        except TimeoutError:
            _logger.error(
                "Job %s timed out after %ss",
                ticket.job_id,
                self.generation_timeout_seconds,
            )
            await self._fail(ticket, current, stored)
        except Exception:
            _logger.exception("Job %s failed", ticket.job_id)
            await self._fail(ticket, current, stored)
        finally:
            self._in_flight.discard(ticket.job_id)

    def reap_stale_jobs(self, now: datetime | None = None) -> int:
        """Fail jobs stuck in flight longer than the allowed duration.

        Jobs queued or running in this process are skipped; the sweep only
        targets work whose worker is gone.
        """
        cutoff = (now or datetime.now(tz=UTC)) - timedelta(
            seconds=self.max_in_flight_seconds
        )
        reaped = 0
        stale = self.job_repository.list_stale_jobs(set(IN_FLIGHT_STATUSES), cutoff)
        for job in stale:
            if job.id in self._in_flight:
                continue
            if not can_transition(job.kind, job.status, JobStatus.FAILED):
                continue
            if not self.job_repository.transition_status(
                job.id, job.status, JobStatus.FAILED
            ):
                continue
            reaped += 1
            _logger.warning(
                "Reaped job %s stuck in %s since %s",
                job.id,
                job.status,
                job.updated_at.isoformat(),
            )
            if self.refund_on_failure and job.credits_charged:
                self.credit_service.refund(job.owner_id, job.credits_charged)
        return reaped

    async def _call_backend(self, ticket: JobTicket) -> list[ImageResult]:
        request = ticket.request
        if isinstance(request, RetouchRequest):
            if ticket.source_url is None:
                raise ValueError("Retouch job has no source image")
            return await self.generation_service.retouch(
                ticket.job_id, request, ticket.source_url
            )
        return await self.generation_service.generate(ticket.job_id, request)

    def _transition(
        self, ticket: JobTicket, current: JobStatus, target: JobStatus
    ) -> bool:
        ensure_transition(ticket.kind, current, target)
        return self.job_repository.transition_status(ticket.job_id, current, target)

    def _has_status(self, ticket: JobTicket, status: JobStatus) -> bool:
        job = self.job_repository.get_job(ticket.job_id)
        return job is not None and job.status is status

    def _discard_images(self, ticket: JobTicket, stored: list[ImageRecord]) -> None:
        if not stored or self._has_status(ticket, JobStatus.COMPLETED):
            return
        self.image_repository.delete_images([image.id for image in stored])
        _logger.warning(
            "Discarded %s images of unfinished job %s", len(stored), ticket.job_id
        )

    async def _fail(
        self, ticket: JobTicket, current: JobStatus, stored: list[ImageRecord]
    ) -> None:
        try:
            failed = await asyncio.to_thread(
                self._transition, ticket, current, JobStatus.FAILED
            )
            await asyncio.to_thread(self._discard_images, ticket, stored)
            if failed and self.refund_on_failure:
                await asyncio.to_thread(
                    self.credit_service.refund, ticket.owner_id, ticket.credits_charged
                )
        except Exception:
            _logger.exception("Could not mark job %s as failed", ticket.job_id)

    async def _reap_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.reaper_interval_seconds)
            try:
                reaped = await asyncio.to_thread(self.reap_stale_jobs)
            except Exception:
                _logger.exception("Stale job sweep failed")
                continue
            if reaped:
                _logger.info("Stale job sweep failed %s jobs", reaped)


def _job_name(request: GenerationRequest | RetouchRequest) -> str:
    if isinstance(request, RetouchRequest):
        return f"ProfilePerfect Retouch - {request.edit_type}"
    return f"ProfilePerfect Headshots - {request.style_preset}"


def _new_images(ticket: JobTicket, results: list[ImageResult]) -> list[NewImage]:
    request = ticket.request
    if isinstance(request, RetouchRequest):
        return [
            NewImage(
                url=result.url,
                parent_image_id=request.source_image_id,
                style_preset="retouched",
                background_preset=request.edit_type,
            )
            for result in results
        ]
    return [
        NewImage(
            url=result.url,
            style_preset=request.style_preset,
            background_preset=request.background_preset,
        )
        for result in results
    ]
