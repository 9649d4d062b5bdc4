"""Storage of user-provided reference photos."""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Protocol

from profileperfect.domain.errors import InvalidRequestError

_logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class StorageClient(Protocol):
    """Interface for blob storage."""

    async def put(self, content: bytes, filename: str, content_type: str) -> str:
        """Store content under filename and return its public URL."""


@dataclass(frozen=True)
class StoredFile:
    """A file written to storage."""

    url: str
    name: str


@dataclass
class UploadService:
    """Validates and stores reference photos."""

    storage: StorageClient
    max_upload_bytes: int = 10 * 1024 * 1024

    async def upload(self, owner_id: str, filename: str, content: bytes) -> StoredFile:
        """Store an uploaded image under the owner's folder."""
        if not owner_id or "/" in owner_id or "\\" in owner_id or ".." in owner_id:
            raise InvalidRequestError("Invalid owner id")
        if not content:
            raise InvalidRequestError("File is empty")
        if len(content) > self.max_upload_bytes:
            raise InvalidRequestError(
                f"File exceeds the {self.max_upload_bytes} byte limit"
            )
        content_type = detect_image_type(content)
        if content_type is None:
            raise InvalidRequestError("File must be a JPEG, PNG or WebP image")
        name = f"{owner_id}/{unique_filename(content_type)}"
        url = await self.storage.put(content, name, content_type)
        _logger.info("Stored upload %s for user %s as %s", filename, owner_id, name)
        return StoredFile(url=url, name=name)


def unique_filename(content_type: str) -> str:
    """Build a collision-resistant object name for a detected image type."""
    extension = _EXTENSIONS[content_type]
    return f"{int(time.time() * 1000)}_{secrets.token_hex(6)}.{extension}"


def detect_image_type(content: bytes) -> str | None:
    """Infer an image MIME type from file signatures."""
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return None
