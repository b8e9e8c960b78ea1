from __future__ import annotations

from typing import Protocol

from scene_engine.jobs.models import WorkerPayload


class TaskEnqueuer(Protocol):
  """Interface for handing a queued job to the worker."""

  async def enqueue(self, payload: WorkerPayload) -> None:
    """Schedule the job and return without waiting for the worker."""
    ...
