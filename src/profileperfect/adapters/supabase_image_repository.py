"""Supabase-backed image repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from profileperfect.domain.errors import PersistenceError
from profileperfect.domain.jobs import ImageRecord, NewImage
from profileperfect.services.jobs import ImageRepository

_IMAGE_COLUMNS = (
    "id, model_id, url, is_favorited, parent_image_id, style_preset, "
    "background_preset, source, created_at"
)


@dataclass
class SupabaseImageRepository(ImageRepository):
    """Supabase implementation for generated images."""

    client: Client

    def create_images(self, job_id: int, images: list[NewImage]) -> list[ImageRecord]:
        """Insert all images for a job in one statement."""
        if not images:
            return []
        response = (
            self.client.table("images")
            .insert(
                [
                    {
                        "model_id": job_id,
                        "url": image.url,
                        "is_favorited": False,
                        "parent_image_id": image.parent_image_id,
                        "style_preset": image.style_preset,
                        "background_preset": image.background_preset,
                        "source": image.source,
                    }
                    for image in images
                ]
            )
            .execute()
        )
        if not response.data or len(response.data) != len(images):
            raise PersistenceError(f"Failed to store images for job {job_id}")
        return [_parse_image(row) for row in response.data]

    def get_image(self, image_id: int) -> ImageRecord | None:
        """Return an image by id, if present."""
        response = (
            self.client.table("images")
            .select(_IMAGE_COLUMNS)
            .eq("id", image_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_image(response.data[0])

    def list_images_for_job(self, job_id: int) -> list[ImageRecord]:
        """Return a job's images, newest first."""
        response = (
            self.client.table("images")
            .select(_IMAGE_COLUMNS)
            .eq("model_id", job_id)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .execute()
        )
        return [_parse_image(row) for row in response.data or []]

    def set_favorited(self, image_id: int, favorited: bool) -> ImageRecord | None:
        """Update the favorite flag and return the updated row."""
        response = (
            self.client.table("images")
            .update({"is_favorited": favorited})
            .eq("id", image_id)
            .execute()
        )
        if not response.data:
            return None
        return _parse_image(response.data[0])

    def delete_images(self, image_ids: list[int]) -> None:
        """Delete images by id."""
        if not image_ids:
            return
        self.client.table("images").delete().in_("id", image_ids).execute()


def _parse_image(row: dict[str, object]) -> ImageRecord:
    created_raw = row.get("created_at")
    parent_image_id = row.get("parent_image_id")
    return ImageRecord(
        id=int(row["id"]),
        job_id=int(row["model_id"]),
        url=str(row["url"]),
        created_at=(
            datetime.fromisoformat(created_raw)
            if isinstance(created_raw, str) and created_raw
            else datetime.now(tz=UTC)
        ),
        favorited=bool(row.get("is_favorited", False)),
        parent_image_id=int(parent_image_id) if parent_image_id is not None else None,
        style_preset=row.get("style_preset"),
        background_preset=row.get("background_preset"),
        source=str(row.get("source") or "profileperfect-ai"),
    )
