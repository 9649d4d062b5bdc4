"""Supabase-backed job repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from profileperfect.domain.errors import PersistenceError
from profileperfect.domain.jobs import JobKind, JobRecord, JobStatus
from profileperfect.services.jobs import JobRepository

_JOB_COLUMNS = (
    "id, user_id, type, status, name, input_refs, credits_charged, params, "
    "parent_image_id, created_at, updated_at"
)


@dataclass
class SupabaseJobRepository(JobRepository):
    """Supabase implementation for generation and retouch jobs."""

    client: Client

    def create_job(  # noqa: PLR0913
        self,
        owner_id: str,
        kind: JobKind,
        name: str,
        input_refs: list[str],
        credits_charged: int,
        params: dict[str, object],
        parent_image_id: int | None = None,
    ) -> JobRecord:
        """Insert a job row in the processing state and return it."""
        response = (
            self.client.table("generation_jobs")
            .insert(
                {
                    "user_id": owner_id,
                    "type": kind.value,
                    "status": JobStatus.PROCESSING.value,
                    "name": name,
                    "input_refs": input_refs,
                    "credits_charged": credits_charged,
                    "params": params,
                    "parent_image_id": parent_image_id,
                }
            )
            .execute()
        )
        if not response.data:
            raise PersistenceError("Failed to create generation job")
        return _parse_job(response.data[0])

    def get_job(self, job_id: int) -> JobRecord | None:
        """Return a job by id, if present."""
        response = (
            self.client.table("generation_jobs")
            .select(_JOB_COLUMNS)
            .eq("id", job_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_job(response.data[0])

    def transition_status(
        self, job_id: int, from_status: JobStatus, to_status: JobStatus
    ) -> bool:
        """Conditionally update the status; True when a row was changed."""
        response = (
            self.client.table("generation_jobs")
            .update(
                {
                    "status": to_status.value,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", job_id)
            .eq("status", from_status.value)
            .execute()
        )
        return bool(response.data)

    def list_jobs_for_owner(self, owner_id: str, limit: int) -> list[JobRecord]:
        """Return an owner's most recent jobs."""
        response = (
            self.client.table("generation_jobs")
            .select(_JOB_COLUMNS)
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [_parse_job(row) for row in response.data or []]

    def list_stale_jobs(
        self, statuses: set[JobStatus], updated_before: datetime
    ) -> list[JobRecord]:
        """Return jobs in the given statuses untouched since updated_before."""
        response = (
            self.client.table("generation_jobs")
            .select(_JOB_COLUMNS)
            .in_("status", sorted(status.value for status in statuses))
            .lt("updated_at", updated_before.isoformat())
            .order("updated_at", desc=False)
            .execute()
        )
        return [_parse_job(row) for row in response.data or []]


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return datetime.now(tz=UTC)


def _parse_job(row: dict[str, object]) -> JobRecord:
    parent_image_id = row.get("parent_image_id")
    created_at = _parse_timestamp(row.get("created_at"))
    return JobRecord(
        id=int(row["id"]),
        owner_id=str(row["user_id"]),
        kind=JobKind(row["type"]),
        status=JobStatus(row["status"]),
        name=str(row.get("name") or ""),
        input_refs=list(row.get("input_refs") or []),
        credits_charged=int(row.get("credits_charged") or 0),
        params=dict(row.get("params") or {}),
        parent_image_id=int(parent_image_id) if parent_image_id is not None else None,
        created_at=created_at,
        updated_at=(
            _parse_timestamp(row["updated_at"]) if row.get("updated_at") else created_at
        ),
    )
