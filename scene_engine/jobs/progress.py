"""Job progress tracking for the chunked scene worker."""

from __future__ import annotations

import logging

from scene_engine.storage.jobs_repo import JobsRepository

PROGRESS_FLOOR = 5
PROGRESS_CEILING = 90
PROGRESS_COMPLETE = 100

logger = logging.getLogger(__name__)


def chunk_progress(completed_chunks: int, total_chunks: int) -> int:
  """Interpolate progress between the floor and ceiling by chunks completed."""
  if total_chunks <= 0:
    return PROGRESS_FLOOR
  completed = min(max(completed_chunks, 0), total_chunks)
  return PROGRESS_FLOOR + (completed * (PROGRESS_CEILING - PROGRESS_FLOOR)) // total_chunks


class JobProgressTracker:
  """Persist monotonic progress and scene counts for a running job."""

  def __init__(self, *, job_id: str, jobs_repo: JobsRepository, total_chunks: int) -> None:
    self.job_id = job_id
    self.total_chunks = total_chunks
    self._jobs_repo = jobs_repo
    self._progress = PROGRESS_FLOOR
    self._scenes_generated = 0

  @property
  def progress(self) -> int:
    return self._progress

  @property
  def scenes_generated(self) -> int:
    return self._scenes_generated

  async def scene_persisted(self, scenes_generated: int) -> None:
    """Record the running scene count after each scene insert."""
    self._scenes_generated = scenes_generated
    await self._jobs_repo.update_job(self.job_id, scenes_generated=scenes_generated)

  async def chunk_completed(self, completed_chunks: int) -> int:
    """Advance progress after a chunk's scenes are all persisted."""
    # Never report a lower value than one already written.
    self._progress = max(self._progress, chunk_progress(completed_chunks, self.total_chunks))
    await self._jobs_repo.update_job(self.job_id, progress=self._progress, scenes_generated=self._scenes_generated)
    logger.info("Job %s chunk %s/%s done progress=%s scenes=%s", self.job_id, completed_chunks, self.total_chunks, self._progress, self._scenes_generated)
    return self._progress
