"""Image ownership checks and favorites."""

from dataclasses import dataclass

from profileperfect.domain.errors import NotFoundError
from profileperfect.domain.jobs import ImageRecord
from profileperfect.services.jobs import ImageRepository, JobRepository


@dataclass
class GalleryService:
    """Service for working with a user's stored images."""

    job_repository: JobRepository
    image_repository: ImageRepository

    def get_owned_image(self, owner_id: str, image_id: int) -> ImageRecord:
        """Return an image whose job belongs to owner_id."""
        image = self.image_repository.get_image(image_id)
        if image is None:
            raise NotFoundError("Image not found")
        job = self.job_repository.get_job(image.job_id)
        if job is None or job.owner_id != owner_id:
            raise NotFoundError("Image not found")
        return image

    def set_favorite(
        self, owner_id: str, image_id: int, favorited: bool
    ) -> ImageRecord:
        """Mark or unmark an owned image as a favorite."""
        self.get_owned_image(owner_id, image_id)
        updated = self.image_repository.set_favorited(image_id, favorited)
        if updated is None:
            raise NotFoundError("Image not found")
        return updated
