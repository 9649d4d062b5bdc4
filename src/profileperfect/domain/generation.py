"""Models exchanged with the image generation backend."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GeneratedImage:
    """One image returned by the backend, as a URL or raw bytes."""

    url: str | None = None
    content: bytes | None = None
    content_type: str = "image/png"


@dataclass(frozen=True)
class ImageResult:
    """A backend image after it has been given a durable URL."""

    url: str
