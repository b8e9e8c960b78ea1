"""Chunked scene generation worker."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime

from scene_engine.ai.backoff import Sleep
from scene_engine.ai.client import TextGenerationClient
from scene_engine.ai.errors import ProviderError, SceneParseError
from scene_engine.ai.prompts import build_scene_prompt
from scene_engine.ai.scene_parser import parse_scenes
from scene_engine.jobs.chunker import chunk_script
from scene_engine.jobs.models import InvalidJobTransitionError, JobRecord, WorkerPayload, utc_now
from scene_engine.jobs.progress import PROGRESS_COMPLETE, PROGRESS_FLOOR, JobProgressTracker
from scene_engine.schema.scenes import SceneDraft
from scene_engine.services.scene_cache import SceneCache
from scene_engine.storage.jobs_repo import JobsRepository
from scene_engine.storage.scenes_repo import SceneRecord, ScenesRepository
from scene_engine.utils.ids import generate_scene_id

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Job processing was cancelled"


@dataclass
class _RunState:
  """Mutable outcome of one worker run, read by finalization."""

  scenes: list[SceneDraft] = field(default_factory=list)
  retry_count: int = 0
  succeeded: bool = False
  error_message: str | None = None


def _failure_message(exc: BaseException) -> str:
  # Known failures already carry a readable message.
  if isinstance(exc, ProviderError | SceneParseError):
    return str(exc)
  if isinstance(exc, asyncio.CancelledError):
    return CANCELLED_MESSAGE
  detail = str(exc)
  return f"{type(exc).__name__}: {detail}" if detail else type(exc).__name__


class SceneJobWorker:
  """Process one queued job: chunk, generate, parse, persist, finalize."""

  def __init__(
    self,
    *,
    jobs_repo: JobsRepository,
    scenes_repo: ScenesRepository,
    cache: SceneCache,
    client: TextGenerationClient,
    chunk_max_chars: int,
    inter_chunk_delay_seconds: float,
    sleep: Sleep = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._scenes_repo = scenes_repo
    self._cache = cache
    self._client = client
    self._chunk_max_chars = chunk_max_chars
    self._inter_chunk_delay = inter_chunk_delay_seconds
    self._sleep = sleep
    self._clock = clock

  async def run(self, payload: WorkerPayload) -> JobRecord | None:
    """Run the job to a terminal state. Returns the final record."""
    # Only the trigger that wins the queued -> processing claim runs the job.
    claimed = await self._jobs_repo.claim_job(payload.job_id, started_at=self._clock(), progress=PROGRESS_FLOOR, max_retries=self._client.max_retries)
    if claimed is None:
      job = await self._jobs_repo.get_job(payload.job_id)
      if job is None:
        logger.warning("Skipping job %s: not found", payload.job_id)
      else:
        logger.info("Skipping job %s: status is %s", payload.job_id, job.status)
      return job

    async with self._job_run(payload.job_id) as state:
      await self._process(payload, state)

    return await self._jobs_repo.get_job(payload.job_id)

  @asynccontextmanager
  async def _job_run(self, job_id: str) -> AsyncIterator[_RunState]:
    """Yield run state; on exit write exactly one terminal status.

    Ordinary exceptions are recorded on the job and suppressed here.
    Cancellation is recorded and then re-raised.
    """
    state = _RunState()
    try:
      yield state
    except asyncio.CancelledError as exc:
      state.error_message = _failure_message(exc)
      raise
    except Exception as exc:
      state.error_message = _failure_message(exc)
      logger.error("Job %s failed: %s", job_id, state.error_message, exc_info=True)
    finally:
      await self._finalize(job_id, state)

  async def _finalize(self, job_id: str, state: _RunState) -> None:
    now = self._clock()
    try:
      if state.succeeded and state.error_message is None:
        await self._jobs_repo.update_job(job_id, status="completed", progress=PROGRESS_COMPLETE, scenes_generated=len(state.scenes), retry_count=state.retry_count, completed_at=now)
        logger.info("Job %s completed with %s scenes", job_id, len(state.scenes))
        return

      message = state.error_message or "Job ended before all chunks were processed"
      await self._jobs_repo.update_job(job_id, status="failed", error_message=message, scenes_generated=len(state.scenes), retry_count=state.retry_count, completed_at=now)
      logger.info("Job %s failed after %s scenes: %s", job_id, len(state.scenes), message)
    except InvalidJobTransitionError as exc:
      # A stale sweep already closed the job; its terminal state stands.
      logger.warning("Job %s was already %s at finalization", job_id, exc.current)

  async def _process(self, payload: WorkerPayload, state: _RunState) -> None:
    job_id = payload.job_id
    chunks = chunk_script(payload.script, self._chunk_max_chars)
    if not chunks:
      raise SceneParseError("Script contains no text to split into scenes")
    tracker = JobProgressTracker(job_id=job_id, jobs_repo=self._jobs_repo, total_chunks=len(chunks))
    logger.info("Job %s processing %s chunk(s) with model %s", job_id, len(chunks), self._client.model_name)

    async def record_retry(attempt: int, delay: float, exc: BaseException) -> None:
      state.retry_count += 1
      logger.warning("Job %s retry %s in %.2fs: %s", job_id, attempt, delay, exc)
      await self._jobs_repo.update_job(job_id, retry_count=state.retry_count)

    for index, chunk in enumerate(chunks):
      # Space out calls to respect the provider's rate limits.
      if index > 0 and self._inter_chunk_delay > 0:
        await self._sleep(self._inter_chunk_delay)

      prompt = build_scene_prompt(chunk, index=index, total=len(chunks), language=payload.language, story_type=payload.story_type, tone=payload.tone)
      raw = await self._client.generate(prompt, on_retry=record_retry)
      drafts = parse_scenes(raw, start_order=len(state.scenes) + 1)

      # Persist each scene as soon as it is parsed so earlier work survives later failures.
      for draft in drafts:
        order = len(state.scenes) + 1
        await self._scenes_repo.add_scene(self._scene_record(payload, order, draft))
        state.scenes.append(draft)
        await tracker.scene_persisted(order)

      await tracker.chunk_completed(index + 1)

    if not state.scenes:
      raise SceneParseError("Failed to parse AI response: no scenes were returned")

    await self._store_in_cache(payload, state.scenes)
    state.succeeded = True

  async def _store_in_cache(self, payload: WorkerPayload, scenes: list[SceneDraft]) -> None:
    try:
      await self._cache.store(payload.fingerprint, language=payload.language, story_type=payload.story_type, tone=payload.tone, scenes=scenes)
    except Exception:  # noqa: BLE001
      # A cache write failure only costs a future regeneration.
      logger.warning("Failed to cache scenes for job %s fingerprint %s", payload.job_id, payload.fingerprint, exc_info=True)
    else:
      logger.info("Cached %s scenes for fingerprint %s", len(scenes), payload.fingerprint)

  @staticmethod
  def _scene_record(payload: WorkerPayload, order: int, draft: SceneDraft) -> SceneRecord:
    return SceneRecord(
      scene_id=generate_scene_id(),
      project_id=payload.project_id,
      job_id=payload.job_id,
      scene_order=order,
      title=draft.title,
      narration_text=draft.narration_text,
      visual_description=draft.visual_description,
      mood=draft.mood,
      estimated_duration=draft.estimated_duration,
    )
