"""Read-only job status reporting."""

from dataclasses import dataclass

from profileperfect.domain.errors import NotFoundError
from profileperfect.domain.jobs import JobRecord, JobStatusReport
from profileperfect.services.jobs import ImageRepository, JobRepository


@dataclass
class StatusService:
    """Answers polling requests for job progress."""

    job_repository: JobRepository
    image_repository: ImageRepository

    def get_status(self, job_id: int, owner_id: str) -> JobStatusReport:
        """Return the job and its images if the caller owns it."""
        job = self.job_repository.get_job(job_id)
        if job is None or job.owner_id != owner_id:
            raise NotFoundError("Job not found")
        images = self.image_repository.list_images_for_job(job.id)
        return JobStatusReport(job=job, images=images)

    def list_jobs(self, owner_id: str, limit: int = 20) -> list[JobRecord]:
        """Return the caller's most recent jobs."""
        return self.job_repository.list_jobs_for_owner(owner_id, limit)
