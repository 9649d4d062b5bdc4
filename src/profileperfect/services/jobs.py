"""Job and image persistence interfaces."""

from datetime import datetime
from typing import Protocol

from profileperfect.domain.jobs import (
    ImageRecord,
    JobKind,
    JobRecord,
    JobStatus,
    NewImage,
)


class JobRepository(Protocol):
    """Persistence interface for jobs."""

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
        """Create a job in the processing state and return it."""

    def get_job(self, job_id: int) -> JobRecord | None:
        """Return a job by id, if present."""

    def transition_status(
        self, job_id: int, from_status: JobStatus, to_status: JobStatus
    ) -> bool:
        """Move a job to to_status only if it is currently in from_status."""

    def list_jobs_for_owner(self, owner_id: str, limit: int) -> list[JobRecord]:
        """Return an owner's most recent jobs."""

    def list_stale_jobs(
        self, statuses: set[JobStatus], updated_before: datetime
    ) -> list[JobRecord]:
        """Return jobs in the given statuses not updated since updated_before."""


class ImageRepository(Protocol):
    """Persistence interface for images."""

    def create_images(self, job_id: int, images: list[NewImage]) -> list[ImageRecord]:
        """Store images for a job and return the stored rows."""

    def get_image(self, image_id: int) -> ImageRecord | None:
        """Return an image by id, if present."""

    def list_images_for_job(self, job_id: int) -> list[ImageRecord]:
        """Return a job's images, newest first."""

    def set_favorited(self, image_id: int, favorited: bool) -> ImageRecord | None:
        """Update the favorite flag and return the updated image."""

    def delete_images(self, image_ids: list[int]) -> None:
        """Remove images, used when their job did not complete."""
