"""Validated job requests accepted by the orchestrator."""

import math
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from profileperfect.domain.errors import InvalidRequestError
from profileperfect.domain.jobs import JobKind

ImageSize = Literal["1024x1024", "1024x1536", "1536x1024"]
ImageQuality = Literal["standard", "high"]
EditType = Literal["retouch", "background", "both"]

IMAGES_PER_CREDIT = 4
RETOUCH_CREDITS: dict[str, int] = {"retouch": 1, "background": 1, "both": 2}


class GenerationRequest(BaseModel):
    """Request to generate headshots from reference photos."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    kind: Literal[JobKind.GENERATION] = JobKind.GENERATION
    reference_images: list[Annotated[str, Field(min_length=1)]] = Field(
        alias="referenceImages", min_length=5, max_length=10
    )
    style_preset: str = Field(alias="stylePreset", min_length=1)
    background_preset: str = Field(alias="backgroundPreset", min_length=1)
    count: int = Field(default=16, ge=1, le=32)
    size: ImageSize = "1024x1024"
    quality: ImageQuality = "high"

    @property
    def required_credits(self) -> int:
        """One credit per started batch of four images."""
        return math.ceil(self.count / IMAGES_PER_CREDIT)


class RetouchRequest(BaseModel):
    """Request to retouch one previously generated image."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    kind: Literal[JobKind.RETOUCH] = JobKind.RETOUCH
    source_image_id: int = Field(alias="sourceImageId", gt=0, strict=True)
    edit_type: EditType = Field(alias="editType")
    intensity: float = Field(ge=0.1, le=1.0)
    background_prompt: str | None = Field(default=None, alias="backgroundPrompt")
    preserve_identity: bool = Field(alias="preserveIdentity", strict=True)

    @model_validator(mode="after")
    def _require_background_prompt(self) -> "RetouchRequest":
        if self.edit_type == "background" and not (
            self.background_prompt and self.background_prompt.strip()
        ):
            raise ValueError("Background prompt is required for background edits")
        return self

    @property
    def required_credits(self) -> int:
        """Fixed price keyed by edit type."""
        return RETOUCH_CREDITS[self.edit_type]


JobRequest = Annotated[
    GenerationRequest | RetouchRequest, Field(discriminator="kind")
]

_TAGS = {kind.value for kind in JobKind}

_JOB_REQUEST_ADAPTER: TypeAdapter[GenerationRequest | RetouchRequest] = TypeAdapter(
    JobRequest
)


def parse_job_request(
    kind: JobKind | str, payload: object
) -> GenerationRequest | RetouchRequest:
    """Validate a raw JSON payload as a request of the given kind."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    try:
        resolved_kind = JobKind(kind)
    except ValueError as exc:
        raise InvalidRequestError(f"Unknown job kind: {kind}") from exc
    try:
        return _JOB_REQUEST_ADAPTER.validate_python(
            {**payload, "kind": resolved_kind}
        )
    except ValidationError as exc:
        raise InvalidRequestError(format_validation_error(exc)) from exc


def format_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into a single readable message."""
    messages = []
    for error in exc.errors():
        # Discriminated unions prefix locations with the tag value.
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part not in _TAGS
        )
        message = str(error.get("msg", "Invalid value"))
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request"
