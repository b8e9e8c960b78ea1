from __future__ import annotations

import pytest

from scene_engine.jobs.progress import PROGRESS_CEILING, PROGRESS_FLOOR, JobProgressTracker, chunk_progress
from tests.fakes import InMemoryJobsRepo, make_job


def test_chunk_progress_interpolates_between_floor_and_ceiling() -> None:
  assert chunk_progress(0, 3) == PROGRESS_FLOOR
  assert [chunk_progress(done, 3) for done in (1, 2, 3)] == [33, 61, PROGRESS_CEILING]
  assert chunk_progress(7, 3) == PROGRESS_CEILING


@pytest.mark.anyio
async def test_tracker_persists_scene_counts_and_progress() -> None:
  repo = InMemoryJobsRepo()
  repo.put(make_job(status="processing"))
  tracker = JobProgressTracker(job_id="job-1", jobs_repo=repo, total_chunks=2)

  await tracker.scene_persisted(1)
  await tracker.scene_persisted(2)
  await tracker.chunk_completed(1)

  job = await repo.get_job("job-1")
  assert job is not None
  assert job.scenes_generated == 2
  assert job.progress == 47


@pytest.mark.anyio
async def test_tracker_never_moves_backwards() -> None:
  repo = InMemoryJobsRepo()
  repo.put(make_job(status="processing"))
  tracker = JobProgressTracker(job_id="job-1", jobs_repo=repo, total_chunks=4)

  await tracker.chunk_completed(3)
  assert await tracker.chunk_completed(1) == tracker.progress == chunk_progress(3, 4)
