"""Wiring for the scene job worker."""

from __future__ import annotations

import logging

from scene_engine.ai.client import build_generation_client
from scene_engine.config import Settings, get_settings
from scene_engine.jobs.models import JobRecord, WorkerPayload
from scene_engine.jobs.worker import SceneJobWorker
from scene_engine.services.scene_cache import SceneCache
from scene_engine.storage.factory import get_cache_repo, get_jobs_repo, get_scenes_repo

logger = logging.getLogger(__name__)


def build_worker(settings: Settings) -> SceneJobWorker:
  """Construct a worker bound to the configured storage and model."""
  return SceneJobWorker(
    jobs_repo=get_jobs_repo(settings),
    scenes_repo=get_scenes_repo(settings),
    cache=SceneCache(get_cache_repo(settings), ttl_seconds=settings.cache_ttl_seconds),
    client=build_generation_client(settings),
    chunk_max_chars=settings.chunk_max_chars,
    inter_chunk_delay_seconds=settings.inter_chunk_delay_seconds,
  )


async def process_job(payload: WorkerPayload, settings: Settings | None = None) -> JobRecord | None:
  """Run one job to a terminal state."""
  settings = settings or get_settings()
  worker = build_worker(settings)
  logger.info("Worker picked up job %s", payload.job_id)
  return await worker.run(payload)
