"""Read-side view of a job for status polling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from scene_engine.jobs.models import JobRecord, JobStatus
from scene_engine.schema.scenes import SceneDraft
from scene_engine.storage.jobs_repo import JobsRepository
from scene_engine.storage.scenes_repo import ScenesRepository

GENERIC_FAILURE = "Generation failed. Please try again."

# First matching hint wins; hints are matched against the lowercased stored message.
_FAILURE_REASONS: tuple[tuple[tuple[str, ...], str], ...] = (
  (("timed out", "timeout"), "The generation took too long. Please try again."),
  (("rate limit",), "AI service is busy. Please try again in a moment."),
  (("parse", "no scenes"), "The AI returned an unexpected response. Please try again."),
  (("ai service", "dispatch"), "AI service error. Please try again."),
)


def failure_reason(error_message: str | None) -> str:
  """Map an internal failure message to a plain-language reason."""
  normalized = (error_message or "").lower()
  for hints, reason in _FAILURE_REASONS:
    if any(hint in normalized for hint in hints):
      return reason
  return GENERIC_FAILURE


@dataclass(frozen=True)
class JobStatusView:
  job_id: str
  status: JobStatus
  progress: int
  scenes_generated: int
  failure_reason: str | None
  created_at: datetime
  started_at: datetime | None
  completed_at: datetime | None
  scenes: list[SceneDraft] | None = field(default=None)


class JobStatusService:
  def __init__(self, *, jobs_repo: JobsRepository, scenes_repo: ScenesRepository) -> None:
    self._jobs_repo = jobs_repo
    self._scenes_repo = scenes_repo

  async def get_status(self, job_id: str, *, user_id: str) -> JobStatusView | None:
    """Return the job's status, or None when it does not exist for this caller."""
    job = await self._jobs_repo.get_job(job_id)
    # Other users' jobs are indistinguishable from missing ones.
    if job is None or job.user_id != user_id:
      return None
    return await self.build_view(job)

  async def build_view(self, job: JobRecord) -> JobStatusView:
    scenes = None
    if job.status == "completed":
      scenes = [row.to_draft() for row in await self._scenes_repo.list_scenes_for_job(job.job_id)]
    return JobStatusView(
      job_id=job.job_id,
      status=job.status,
      progress=job.progress,
      scenes_generated=job.scenes_generated,
      failure_reason=failure_reason(job.error_message) if job.status == "failed" else None,
      created_at=job.created_at,
      started_at=job.started_at,
      completed_at=job.completed_at,
      scenes=scenes,
    )
