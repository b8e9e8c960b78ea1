from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from scene_engine.jobs.models import JobRecord, WorkerPayload
from scene_engine.services.tasks.interface import TaskEnqueuer

logger = logging.getLogger(__name__)

JobRunner = Callable[[WorkerPayload], Awaitable[JobRecord | None]]


class InProcessEnqueuer(TaskEnqueuer):
  """Run the worker as a detached task on the current event loop."""

  def __init__(self, runner: JobRunner) -> None:
    self._runner = runner
    # The event loop only keeps weak references to tasks.
    self._tasks: set[asyncio.Task[JobRecord | None]] = set()

  @property
  def pending(self) -> int:
    return len(self._tasks)

  async def enqueue(self, payload: WorkerPayload) -> None:
    task = asyncio.create_task(self._runner(payload), name=f"scene-job-{payload.job_id}")
    self._tasks.add(task)
    task.add_done_callback(self._on_done)
    logger.info("Dispatched job %s in-process", payload.job_id)

  def _on_done(self, task: asyncio.Task[JobRecord | None]) -> None:
    self._tasks.discard(task)
    if task.cancelled():
      logger.warning("Worker task %s was cancelled", task.get_name())
      return
    exc = task.exception()
    if exc is not None:
      logger.error("Worker task %s raised", task.get_name(), exc_info=exc)

  async def drain(self) -> None:
    """Wait for every dispatched worker to return."""
    while self._tasks:
      await asyncio.gather(*list(self._tasks), return_exceptions=True)

  async def shutdown(self) -> None:
    """Cancel running workers; each one records the cancellation on its job."""
    tasks = list(self._tasks)
    for task in tasks:
      task.cancel()
    if tasks:
      logger.info("Cancelling %s in-flight worker task(s)", len(tasks))
      await asyncio.gather(*tasks, return_exceptions=True)
