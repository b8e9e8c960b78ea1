"""Client-side job poller that survives restarts through a session store."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from scene_engine.api.models import JobStatusResponse
from scene_engine.client.api import ApiError, ScenesApiClient
from scene_engine.client.messages import TIMEOUT_MESSAGE, message_for
from scene_engine.client.session_store import ClientJobSession, SessionStore
from scene_engine.schema.scenes import SceneDraft

logger = logging.getLogger(__name__)

PollerStatus = Literal["idle", "queued", "processing", "completed", "failed"]

DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_WAIT_SECONDS = 300.0
_TERMINAL: frozenset[str] = frozenset({"completed", "failed"})


@dataclass(frozen=True)
class PollerState:
  """Everything a UI needs to render the current job."""

  status: PollerStatus = "idle"
  job_id: str | None = None
  progress: int = 0
  scenes_generated: int = 0
  scenes: list[SceneDraft] = field(default_factory=list)
  error: str | None = None
  cached: bool = False
  is_polling: bool = False

  @property
  def can_retry(self) -> bool:
    return self.status == "failed"


class JobPoller:
  """Submit a job and follow it to a terminal state.

  Exactly one status request is outstanding at a time. The maximum wait only
  changes local state; the server-side job keeps running.
  """

  def __init__(
    self,
    api: ScenesApiClient,
    store: SessionStore,
    *,
    project_id: str,
    interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    on_change: Callable[[PollerState], None] | None = None,
  ) -> None:
    self._api = api
    self._store = store
    self.project_id = project_id
    self._interval = interval
    self._max_wait = max_wait
    self._clock = clock
    self._sleep = sleep
    self._on_change = on_change
    self._state = PollerState()
    self._task: asyncio.Task[None] | None = None

  @property
  def state(self) -> PollerState:
    return self._state

  @property
  def is_polling(self) -> bool:
    return self._task is not None and not self._task.done()

  def _set(self, **changes: Any) -> None:
    self._state = replace(self._state, **changes)
    if self._on_change is not None:
      self._on_change(self._state)

  async def submit_job(self, script: str, *, language: str | None = None, story_type: str | None = None, tone: str | None = None) -> PollerState:
    """Submit a script; returns once the job is completed from cache or polling has started."""
    if self.is_polling:
      raise RuntimeError("A job is already being tracked; call reset() first.")

    # Optimistic: show progress immediately while the request is in flight.
    self._state = PollerState()
    self._set(status="queued")
    try:
      outcome = await self._api.submit_job(project_id=self.project_id, script=script, language=language, story_type=story_type, tone=tone)
    except ApiError as exc:
      logger.info("Submission rejected: %s", exc)
      self._set(status="failed", error=exc.message)
      return self._state

    if outcome.cached:
      self._store.clear(self.project_id)
      self._set(status="completed", job_id=outcome.job_id, progress=100, scenes_generated=len(outcome.scenes), scenes=list(outcome.scenes), cached=True)
      return self._state

    if outcome.conflict:
      logger.info("Adopting active job %s", outcome.job_id)
    self._attach(outcome.job_id, outcome.status)
    return self._state

  async def resume(self) -> bool:
    """Re-attach to a stored in-flight job after verifying the session."""
    if self.is_polling:
      return True
    saved = self._store.load(self.project_id)
    if saved is None:
      return False
    if saved.status in _TERMINAL:
      self._store.clear(self.project_id)
      return False

    try:
      valid = await self._api.verify_session()
    except ApiError as exc:
      # Keep the stored job so a later resume can try again.
      logger.warning("Could not verify session before resuming job %s: %s", saved.job_id, exc)
      return False
    if not valid:
      self._store.clear(self.project_id)
      self._state = PollerState()
      self._set(status="idle", error=message_for("auth"))
      return False

    self._state = PollerState()
    self._attach(saved.job_id, saved.status)
    return True

  async def wait(self) -> PollerState:
    """Wait for polling to stop and return the final local state."""
    task = self._task
    if task is not None:
      await asyncio.wait({task})
    return self._state

  async def stop(self) -> None:
    """Stop polling without touching the server-side job or stored session."""
    task, self._task = self._task, None
    if task is not None and not task.done():
      task.cancel()
      try:
        await task
      except asyncio.CancelledError:
        pass
    if self._state.is_polling:
      self._set(is_polling=False)

  async def reset(self) -> None:
    """Forget the current job and return to idle."""
    await self.stop()
    self._store.clear(self.project_id)
    self._state = PollerState()
    self._set()

  def _attach(self, job_id: str, status: str) -> None:
    local_status: PollerStatus = "processing" if status == "processing" else "queued"
    self._store.save(ClientJobSession(project_id=self.project_id, job_id=job_id, status=local_status))
    self._set(status=local_status, job_id=job_id, is_polling=True, error=None)
    self._task = asyncio.create_task(self._poll_loop(job_id), name=f"poll-{job_id}")

  async def _poll_loop(self, job_id: str) -> None:
    deadline = self._clock() + self._max_wait
    try:
      while True:
        if self._clock() >= deadline:
          self._timeout(job_id)
          return

        try:
          status = await self._api.get_job_status(job_id)
        except ApiError as exc:
          if self._handle_poll_error(job_id, exc):
            return
        else:
          if self._apply(job_id, status):
            return

        remaining = deadline - self._clock()
        if remaining <= 0:
          self._timeout(job_id)
          return
        await self._sleep(min(self._interval, remaining))
    finally:
      if self._state.is_polling:
        self._set(is_polling=False)

  def _apply(self, job_id: str, status: JobStatusResponse) -> bool:
    """Fold one status response into local state; returns True when polling should stop."""
    # Never let a stale response move the bar backwards.
    progress = max(self._state.progress, status.progress)
    if status.status == "completed":
      scenes = list(status.scenes or [])
      self._store.clear(self.project_id)
      self._set(status="completed", progress=100, scenes_generated=status.scenes_generated, scenes=scenes, error=None, is_polling=False)
      logger.info("Job %s completed with %s scenes", job_id, len(scenes))
      return True
    if status.status == "failed":
      self._store.clear(self.project_id)
      self._set(status="failed", progress=progress, scenes_generated=status.scenes_generated, error=status.failure_reason or message_for("unknown"), is_polling=False)
      logger.info("Job %s failed: %s", job_id, status.failure_reason)
      return True

    if status.status != self._state.status:
      self._store.save(ClientJobSession(project_id=self.project_id, job_id=job_id, status=status.status))
    self._set(status=status.status, progress=progress, scenes_generated=max(self._state.scenes_generated, status.scenes_generated))
    return False

  def _handle_poll_error(self, job_id: str, exc: ApiError) -> bool:
    """Returns True when the error ends polling."""
    if exc.category == "not_found":
      # The stored job no longer exists for this caller.
      logger.warning("Job %s disappeared; clearing local session", job_id)
      self._store.clear(self.project_id)
      self._state = PollerState()
      self._set()
      return True
    if exc.category == "auth":
      # Keep the stored job so it can be resumed after signing in again.
      self._set(status="failed", error=exc.message, is_polling=False)
      return True
    logger.info("Transient poll error for job %s: %s", job_id, exc)
    return False

  def _timeout(self, job_id: str) -> None:
    logger.warning("Gave up waiting for job %s after %.0fs", job_id, self._max_wait)
    self._store.clear(self.project_id)
    self._set(status="failed", error=TIMEOUT_MESSAGE, is_polling=False)
