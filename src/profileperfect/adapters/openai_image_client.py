"""OpenAI client for identity analysis, image generation and edits."""

import base64
from dataclasses import dataclass

import httpx
from openai import AsyncOpenAI

from profileperfect.domain.errors import AdapterError
from profileperfect.domain.generation import GeneratedImage
from profileperfect.services.images import ImageClient

# The Images API caps n per request.
MAX_IMAGES_PER_REQUEST = 10

_QUALITY = {"standard": "medium", "high": "high"}


@dataclass
class OpenAIImageClient(ImageClient):
    """Image client backed by the OpenAI Responses and Images APIs."""

    client: AsyncOpenAI
    http_client: httpx.AsyncClient
    vision_model: str
    image_model: str

    @classmethod
    def create(
        cls,
        api_key: str,
        vision_model: str,
        image_model: str,
        base_url: str | None = None,
    ) -> "OpenAIImageClient":
        """Create an OpenAI image client with a managed httpx session."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, base_url=base_url),
            http_client=httpx.AsyncClient(),
            vision_model=vision_model,
            image_model=image_model,
        )

    async def describe_identity(
        self, *, reference_images: list[str], prompt: str
    ) -> str:
        """Ask the vision model for a likeness description."""
        response = await self.client.responses.create(
            model=self.vision_model,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        *(
                            {"type": "input_image", "image_url": url}
                            for url in reference_images
                        ),
                    ],
                }
            ],
        )
        output_text = response.output_text
        if not output_text:
            raise AdapterError("Identity analysis returned no content")
        return output_text.strip()

    async def generate(
        self, *, prompt: str, count: int, size: str, quality: str
    ) -> list[GeneratedImage]:
        """Render count images, batching to the per-request limit."""
        images: list[GeneratedImage] = []
        remaining = count
        while remaining > 0:
            batch = min(remaining, MAX_IMAGES_PER_REQUEST)
            response = await self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=batch,
                size=size,
                quality=_QUALITY.get(quality, "high"),
            )
            images.extend(_parse_images(response))
            remaining -= batch
        return images

    async def edit(self, *, source_url: str, prompt: str) -> list[GeneratedImage]:
        """Download the source image and send it to the edits endpoint."""
        download = await self.http_client.get(source_url, timeout=30)
        download.raise_for_status()
        content_type = download.headers.get("content-type", "image/png").split(";")[0]
        extension = content_type.rsplit("/", 1)[-1]
        response = await self.client.images.edit(
            model=self.image_model,
            image=(f"source.{extension}", download.content, content_type),
            prompt=prompt,
        )
        return _parse_images(response)

    async def close(self) -> None:
        """Close the underlying HTTP sessions."""
        await self.http_client.aclose()
        await self.client.close()


def _parse_images(response: object) -> list[GeneratedImage]:
    data = getattr(response, "data", None)
    if not data:
        raise AdapterError("OpenAI returned no images")
    images = []
    for item in data:
        b64_json = getattr(item, "b64_json", None)
        url = getattr(item, "url", None)
        if b64_json:
            images.append(GeneratedImage(content=base64.b64decode(b64_json)))
        elif url:
            images.append(GeneratedImage(url=url))
        else:
            raise AdapterError("OpenAI returned an image without data")
    return images
