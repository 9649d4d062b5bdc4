"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from profileperfect.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


class CreditGrant(BaseModel):
    """Credits to add to a user's balance."""

    amount: int = Field(gt=0)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/credits/{user_id}", dependencies=[Depends(require_admin)])
async def get_credits(user_id: str, request: Request) -> dict[str, object]:
    """Return a user's credit balance."""
    container: AppContainer = request.app.state.container
    return {
        "user_id": user_id,
        "balance": container.credit_service.get_balance(user_id),
    }


@router.post("/credits/{user_id}", dependencies=[Depends(require_admin)])
async def grant_credits(
    user_id: str, grant: CreditGrant, request: Request
) -> dict[str, object]:
    """Add credits to a user's balance."""
    container: AppContainer = request.app.state.container
    balance = container.credit_service.grant(user_id, grant.amount)
    return {"user_id": user_id, "balance": balance}


@router.get("/workers", dependencies=[Depends(require_admin)])
async def worker_stats(request: Request) -> dict[str, object]:
    """Return background worker pool counters."""
    container: AppContainer = request.app.state.container
    return {"workers": asdict(container.orchestrator.pool.stats())}


@router.post("/jobs/reap", dependencies=[Depends(require_admin)])
async def reap_jobs(request: Request) -> dict[str, int]:
    """Fail jobs stuck in flight beyond the configured limit."""
    container: AppContainer = request.app.state.container
    return {"reaped": container.orchestrator.reap_stale_jobs()}
