"""Job submission, status and gallery endpoints."""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, Request
from fastapi import status as http_status
from pydantic import BaseModel

from profileperfect.domain.errors import InvalidRequestError
from profileperfect.domain.jobs import ImageRecord, JobKind, JobRecord
from profileperfect.domain.requests import RetouchRequest, parse_job_request

if TYPE_CHECKING:
    from profileperfect.containers import AppContainer
    from profileperfect.services.orchestrator import SubmissionReceipt

router = APIRouter(prefix="/api", tags=["jobs"])


async def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """Return the calling user's id or reject the request."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=http_status.HTTP_401_UNAUTHORIZED)
    return x_user_id.strip()


class UploadPayload(BaseModel):
    """Base64-encoded reference photo."""

    filename: str
    file: str


class FavoritePayload(BaseModel):
    """Favorite flag update."""

    favorited: bool


@router.post("/generate", status_code=http_status.HTTP_201_CREATED)
async def submit_generation(
    request: Request,
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Accept a headshot generation request."""
    container: AppContainer = request.app.state.container
    job_request = parse_job_request(JobKind.GENERATION, payload)
    receipt = await container.orchestrator.submit(user_id, job_request)
    return _serialize_receipt(receipt)


@router.post("/retouch", status_code=http_status.HTTP_201_CREATED)
async def submit_retouch(
    request: Request,
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Accept a retouch request for one of the caller's images."""
    container: AppContainer = request.app.state.container
    job_request = parse_job_request(JobKind.RETOUCH, payload)
    receipt = await container.orchestrator.submit(user_id, job_request)
    response = _serialize_receipt(receipt)
    if isinstance(job_request, RetouchRequest):
        response["parentImageId"] = job_request.source_image_id
    return response


@router.get("/jobs/status")
async def job_status(
    request: Request,
    job_id: str | None = Query(default=None, alias="jobId"),
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Return a job and its images for polling clients."""
    container: AppContainer = request.app.state.container
    if not job_id:
        raise InvalidRequestError("Job ID is required")
    try:
        parsed_id = int(job_id)
    except ValueError as exc:
        raise InvalidRequestError("Job ID must be an integer") from exc
    report = container.status_service.get_status(parsed_id, user_id)
    job = _serialize_job(report.job)
    job["images"] = [_serialize_image(image) for image in report.images]
    return {"success": True, "job": job}


@router.get("/jobs")
async def list_jobs(
    request: Request,
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Return the caller's recent jobs."""
    container: AppContainer = request.app.state.container
    jobs = container.status_service.list_jobs(user_id, limit)
    return {"jobs": [_serialize_job(job) for job in jobs]}


@router.get("/credits")
async def credit_balance(
    request: Request, user_id: str = Depends(require_user)
) -> dict[str, int]:
    """Return the caller's credit balance."""
    container: AppContainer = request.app.state.container
    return {"balance": container.credit_service.get_balance(user_id)}


@router.put("/images/{image_id}/favorite")
async def set_favorite(
    image_id: int,
    payload: FavoritePayload,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Mark or unmark one of the caller's images as a favorite."""
    container: AppContainer = request.app.state.container
    image = container.gallery_service.set_favorite(
        user_id, image_id, payload.favorited
    )
    return {"image": _serialize_image(image)}


@router.post("/uploads", status_code=http_status.HTTP_201_CREATED)
async def upload_photo(
    payload: UploadPayload,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, str]:
    """Store a reference photo and return its URL."""
    container: AppContainer = request.app.state.container
    stored = await container.upload_service.upload(
        user_id, payload.filename, _decode_file(payload.file)
    )
    return {"url": stored.url, "name": stored.name}


def _decode_file(raw: str) -> bytes:
    data = raw.split(",", 1)[1] if raw.startswith("data:") and "," in raw else raw
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequestError("File must be base64 encoded") from exc


def _serialize_receipt(receipt: SubmissionReceipt) -> dict[str, object]:
    return {
        "success": True,
        "jobId": receipt.job.id,
        "status": receipt.job.status.value,
        "estimatedCompletion": receipt.estimated_completion.isoformat(),
    }


def _serialize_job(job: JobRecord) -> dict[str, object]:
    return {
        "id": job.id,
        "kind": job.kind.value,
        "status": job.status.value,
        "name": job.name,
        "inputRefs": job.input_refs,
        "creditsCharged": job.credits_charged,
        "parentImageId": job.parent_image_id,
        "params": job.params,
        "createdAt": job.created_at.isoformat(),
        "updatedAt": job.updated_at.isoformat(),
    }


def _serialize_image(image: ImageRecord) -> dict[str, object]:
    return {
        "id": image.id,
        "jobId": image.job_id,
        "url": image.url,
        "favorited": image.favorited,
        "parentImageId": image.parent_image_id,
        "stylePreset": image.style_preset,
        "backgroundPreset": image.background_preset,
        "source": image.source,
        "createdAt": image.created_at.isoformat(),
    }
