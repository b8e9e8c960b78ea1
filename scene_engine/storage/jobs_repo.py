"""Repository interface for generation job persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from scene_engine.jobs.models import JobRecord, JobStatus

STALE_JOB_MESSAGE = "Job timed out"


class JobsRepository(Protocol):
  """Storage contract for generation job records."""

  async def create_job(self, record: JobRecord) -> JobRecord:
    """Persist a new job.

    Raises `ActiveJobExistsError` when `record` is non-terminal and the user
    already owns a non-terminal job. The check and the insert are atomic.
    """

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def find_active_job(self, user_id: str) -> JobRecord | None:
    """Return the user's non-terminal job, if any."""

  async def claim_job(self, job_id: str, *, started_at: datetime, progress: int, max_retries: int) -> JobRecord | None:
    """Move a `queued` job to `processing` in one conditional write.

    Returns the claimed record, or None when the job is missing or no longer
    queued. At most one caller can claim a given job.
    """

  async def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress: int | None = None,
    scenes_generated: int | None = None,
    retry_count: int | None = None,
    max_retries: int | None = None,
    started_at: datetime | None = None,
    completed_at: datetime | None = None,
    error_message: str | None = None,
  ) -> JobRecord | None:
    """Apply a partial update.

    Raises `InvalidJobTransitionError` when the job is already terminal or the
    status change is not an edge of the state machine.
    """

  async def mark_stale(self, job_id: str, *, message: str = STALE_JOB_MESSAGE) -> JobRecord | None:
    """Fail the job only if it is still non-terminal; returns the resulting record."""
