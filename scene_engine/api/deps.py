"""Shared FastAPI dependencies that assemble services from configuration."""

from __future__ import annotations

from functools import partial

from fastapi import Depends

from scene_engine.config import Settings, get_settings
from scene_engine.services.admission import AdmissionController
from scene_engine.services.job_status import JobStatusService
from scene_engine.services.jobs import process_job
from scene_engine.services.rate_limit import SlidingWindowRateLimiter
from scene_engine.services.scene_cache import SceneCache
from scene_engine.services.tasks.factory import get_task_enqueuer
from scene_engine.storage.factory import get_cache_repo, get_jobs_repo, get_projects_repo, get_rate_limit_store, get_scenes_repo


def get_admission_controller(settings: Settings = Depends(get_settings)) -> AdmissionController:  # noqa: B008
  """Build the admission controller for one request."""
  return AdmissionController(
    jobs_repo=get_jobs_repo(settings),
    scenes_repo=get_scenes_repo(settings),
    projects_repo=get_projects_repo(settings),
    cache=SceneCache(get_cache_repo(settings), ttl_seconds=settings.cache_ttl_seconds),
    rate_limiter=SlidingWindowRateLimiter(get_rate_limit_store(settings), max_requests=settings.rate_limit_max_requests, window_seconds=settings.rate_limit_window_seconds),
    enqueuer=get_task_enqueuer(settings, partial(process_job, settings=settings)),
    script_min_chars=settings.script_min_chars,
    script_max_chars=settings.script_max_chars,
    max_retries=settings.llm_max_retries,
    stale_job_seconds=settings.stale_job_seconds,
  )


def get_job_status_service(settings: Settings = Depends(get_settings)) -> JobStatusService:  # noqa: B008
  return JobStatusService(jobs_repo=get_jobs_repo(settings), scenes_repo=get_scenes_repo(settings))
