from __future__ import annotations

import logging

import httpx

from scene_engine.config import Settings
from scene_engine.jobs.models import WorkerPayload
from scene_engine.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

TASK_PATH = "/internal/tasks/process-job"


class LocalHttpEnqueuer(TaskEnqueuer):
  """Hand jobs to a worker process through its internal task endpoint."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings

  def _task_headers(self) -> dict[str, str]:
    """Build task authentication headers for internal endpoints."""
    # Enforce shared-secret auth for internal endpoints (deny-by-default).
    if not self.settings.task_secret:
      raise RuntimeError("Task secret not configured.")
    return {"authorization": f"Bearer {self.settings.task_secret}"}

  async def enqueue(self, payload: WorkerPayload) -> None:
    """Enqueue a job by POSTing to the task endpoint."""
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured, strictly required for LocalHttpEnqueuer.")

    url = f"{self.settings.base_url.rstrip('/')}{TASK_PATH}"

    try:
      # Never trust environment proxy variables for internal task dispatch.
      async with httpx.AsyncClient(trust_env=False) as client:
        logger.info("Dispatching job %s to %s", payload.job_id, url)
        # The endpoint accepts immediately and runs the worker in the background.
        response = await client.post(url, json=payload.to_dict(), headers=self._task_headers(), timeout=30.0)
        response.raise_for_status()

    except httpx.HTTPStatusError as e:
      logger.error("Task dispatch returned %s for job %s: %s", e.response.status_code, payload.job_id, e.response.text)
      raise
    except httpx.RequestError as e:
      logger.error("Failed to dispatch task for job %s: %s", payload.job_id, e)
      raise
