"""Headshot generation and retouching through an image backend."""

import logging
import secrets
from dataclasses import dataclass
from typing import Protocol

from profileperfect.domain.errors import AdapterError
from profileperfect.domain.generation import GeneratedImage, ImageResult
from profileperfect.domain.requests import GenerationRequest, RetouchRequest
from profileperfect.services.uploads import StorageClient, detect_image_type

_logger = logging.getLogger(__name__)

IDENTITY_PROMPT = (
    "You are a biometric expert and professional photographer. "
    "Analyze the person in these images carefully. Output a detailed physical "
    "description focusing ONLY on permanent physical traits to recreate this "
    "person's likeness: face shape (jawline, chin, cheekbones), eyes (color, "
    "shape, eyebrows), nose, mouth, hair (color, texture, hairline, length, "
    "parting), skin tone, age range and distinctive features such as freckles, "
    "moles, dimples or scars. Do NOT describe clothing, expression or background."
)

# Only the first few references are sent to the vision model.
MAX_IDENTITY_IMAGES = 4


class ImageClient(Protocol):
    """Interface for the external image model."""

    async def describe_identity(
        self, *, reference_images: list[str], prompt: str
    ) -> str:
        """Return a textual description of the person in the references."""

    async def generate(
        self, *, prompt: str, count: int, size: str, quality: str
    ) -> list[GeneratedImage]:
        """Render count images for prompt."""

    async def edit(self, *, source_url: str, prompt: str) -> list[GeneratedImage]:
        """Return edited versions of the image at source_url."""


@dataclass
class ImageGenerationService:
    """Builds prompts, calls the image backend and stores raw outputs."""

    client: ImageClient
    storage: StorageClient

    async def generate(
        self, job_id: int, request: GenerationRequest
    ) -> list[ImageResult]:
        """Produce headshots for a generation request."""
        identity = await self.client.describe_identity(
            reference_images=request.reference_images[:MAX_IDENTITY_IMAGES],
            prompt=IDENTITY_PROMPT,
        )
        if not identity.strip():
            raise AdapterError("Identity analysis returned no content")
        prompt = build_generation_prompt(
            identity, request.style_preset, request.background_preset
        )
        images = await self.client.generate(
            prompt=prompt,
            count=request.count,
            size=request.size,
            quality=request.quality,
        )
        return await self._finalize(job_id, images)

    async def retouch(
        self, job_id: int, request: RetouchRequest, source_url: str
    ) -> list[ImageResult]:
        """Produce a retouched version of a source image."""
        prompt = build_retouch_prompt(
            request.edit_type,
            request.intensity,
            request.background_prompt,
            preserve_identity=request.preserve_identity,
        )
        images = await self.client.edit(source_url=source_url, prompt=prompt)
        return await self._finalize(job_id, images)

    async def _finalize(
        self, job_id: int, images: list[GeneratedImage]
    ) -> list[ImageResult]:
        if not images:
            raise AdapterError("Image backend returned no images")
        results = []
        for index, image in enumerate(images):
            if image.url:
                results.append(ImageResult(url=image.url))
            elif image.content:
                content_type = detect_image_type(image.content) or image.content_type
                url = await self.storage.put(
                    image.content,
                    _output_path(job_id, index, content_type),
                    content_type,
                )
                results.append(ImageResult(url=url))
            else:
                raise AdapterError("Image backend returned an image without data")
        _logger.info("Stored %s images for job %s", len(results), job_id)
        return results


def _output_path(job_id: int, index: int, content_type: str) -> str:
    extension = content_type.rsplit("/", 1)[-1].replace("jpeg", "jpg")
    return f"generated/{job_id}/{index}_{secrets.token_hex(4)}.{extension}"


def build_generation_prompt(
    identity_description: str, style_preset: str, background_preset: str
) -> str:
    """Compose the headshot prompt from an identity description and presets."""
    return (
        "A high-end professional headshot of a person matching this description:\n"
        f"{identity_description.strip()}\n\n"
        "SETTINGS:\n"
        f"- Style: {style_preset}\n"
        f"- Background: {background_preset}\n"
        "- Camera: 85mm portrait lens, f/1.8 aperture\n"
        "- Lighting: Cinematic studio lighting, soft fill, with subtle rim light\n"
        "- Pose: Shoulders angled slightly, face forward, confident but approachable\n"
        "- Quality: 4K, photorealistic, natural skin texture, no plastic skin."
    )


def intensity_descriptor(intensity: float) -> str:
    """Map a 0.1-1.0 intensity to a prompt adjective."""
    if intensity < 0.3:
        return "subtle"
    if intensity < 0.7:
        return "moderate"
    return "strong"


def build_retouch_prompt(
    edit_type: str,
    intensity: float,
    background_prompt: str | None,
    *,
    preserve_identity: bool = True,
) -> str:
    """Compose the retouch prompt for an edit type and intensity."""
    prompt = (
        f"Enhance this portrait with {intensity_descriptor(intensity)} "
        "professional retouching"
    )
    if preserve_identity:
        prompt += " while preserving the person's natural identity and appearance."
    else:
        prompt += "."
    if edit_type in {"retouch", "both"}:
        prompt += (
            " Improve lighting, skin smoothing, and overall professional appearance."
        )
    if edit_type == "background" and background_prompt:
        prompt += f" Replace the background with: {background_prompt.strip()}."
    if edit_type == "both":
        if background_prompt and background_prompt.strip():
            prompt += f" Replace the background with: {background_prompt.strip()}."
        else:
            prompt += " Replace the background with a professional setting."
    return prompt
