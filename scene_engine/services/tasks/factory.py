from __future__ import annotations

from scene_engine.config import Settings
from scene_engine.services.tasks.in_process import InProcessEnqueuer, JobRunner
from scene_engine.services.tasks.interface import TaskEnqueuer
from scene_engine.services.tasks.local import LocalHttpEnqueuer

_in_process: InProcessEnqueuer | None = None


def get_task_enqueuer(settings: Settings, runner: JobRunner) -> TaskEnqueuer:
  """Factory to get the configured task enqueuer."""
  global _in_process
  if settings.task_service_provider == "local-http":
    return LocalHttpEnqueuer(settings)
  # One in-process enqueuer per process so its task set outlives requests.
  if _in_process is None:
    _in_process = InProcessEnqueuer(runner)
  return _in_process


def get_in_process_enqueuer() -> InProcessEnqueuer | None:
  return _in_process
