"""Placeholder image client used when no model credentials are configured."""

from dataclasses import dataclass

from profileperfect.domain.generation import GeneratedImage
from profileperfect.services.images import ImageClient


@dataclass
class DemoImageClient(ImageClient):
    """Returns predictable placeholder URLs instead of calling a model."""

    base_url: str

    async def describe_identity(
        self, *, reference_images: list[str], prompt: str
    ) -> str:
        """Return a generic description."""
        return "A professional adult, as shown in the reference photos."

    async def generate(
        self, *, prompt: str, count: int, size: str, quality: str
    ) -> list[GeneratedImage]:
        """Return one placeholder per requested image."""
        base = self.base_url.rstrip("/")
        return [
            GeneratedImage(url=f"{base}/demo-headshot-{index + 1}.jpg")
            for index in range(count)
        ]

    async def edit(self, *, source_url: str, prompt: str) -> list[GeneratedImage]:
        """Return a single placeholder retouch."""
        return [GeneratedImage(url=f"{self.base_url.rstrip('/')}/demo-retouched.jpg")]
