"""Admission control for scene generation submissions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from scene_engine.jobs.models import ActiveJobExistsError, JobRecord, WorkerPayload, utc_now
from scene_engine.schema.scenes import SceneDraft, normalize_language, normalize_story_type, normalize_tone
from scene_engine.services.errors import ProjectAccessDeniedError, ProjectNotFoundError, RateLimitExceededError, SubmissionValidationError
from scene_engine.services.fingerprint import fingerprint
from scene_engine.services.rate_limit import SlidingWindowRateLimiter
from scene_engine.services.scene_cache import SceneCache
from scene_engine.services.tasks.interface import TaskEnqueuer
from scene_engine.storage.jobs_repo import JobsRepository
from scene_engine.storage.projects_repo import ProjectsRepository
from scene_engine.storage.scenes_repo import SceneRecord, ScenesRepository
from scene_engine.utils.ids import generate_job_id, generate_scene_id

logger = logging.getLogger(__name__)

DISPATCH_FAILED_MESSAGE = "Failed to dispatch job to the worker"


@dataclass(frozen=True)
class SubmissionResult:
  """Outcome of a submission: a new job, a cached completion, or the existing active job."""

  job: JobRecord
  cached: bool = False
  conflict: bool = False
  scenes: list[SceneDraft] = field(default_factory=list)


class AdmissionController:
  """Validate, rate-limit, deduplicate and hand off scene generation jobs."""

  def __init__(
    self,
    *,
    jobs_repo: JobsRepository,
    scenes_repo: ScenesRepository,
    projects_repo: ProjectsRepository,
    cache: SceneCache,
    rate_limiter: SlidingWindowRateLimiter,
    enqueuer: TaskEnqueuer,
    script_min_chars: int,
    script_max_chars: int,
    max_retries: int,
    stale_job_seconds: int,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    self._jobs_repo = jobs_repo
    self._scenes_repo = scenes_repo
    self._projects_repo = projects_repo
    self._cache = cache
    self._rate_limiter = rate_limiter
    self._enqueuer = enqueuer
    self._script_min_chars = script_min_chars
    self._script_max_chars = script_max_chars
    self._max_retries = max_retries
    self._stale_after = timedelta(seconds=stale_job_seconds)
    self._clock = clock

  async def submit(self, *, user_id: str, project_id: str, script: str, language: str | None = None, story_type: str | None = None, tone: str | None = None) -> SubmissionResult:
    """Admit a submission.

    Raises an `AdmissionError` subclass for validation, ownership and rate-limit
    failures; none of those leave side effects behind.
    """
    script = self._validate_script(script)
    project_id = (project_id or "").strip()
    if not project_id:
      raise SubmissionValidationError("Project ID is required")
    await self._ensure_project_owner(user_id, project_id)

    # Unknown choices fall back to defaults so the fingerprint sees canonical values.
    language = normalize_language(language)
    story_type = normalize_story_type(story_type)
    tone = normalize_tone(tone)

    decision = await self._rate_limiter.acquire(user_id)
    if not decision.allowed:
      raise RateLimitExceededError("Too many generation requests. Please wait a moment.", retry_after_seconds=decision.retry_after_seconds)

    active = await self._find_live_active_job(user_id)
    if active is not None:
      logger.info("User %s already has active job %s (%s)", user_id, active.job_id, active.status)
      return SubmissionResult(job=active, conflict=True)

    script_hash = fingerprint(script, language, story_type, tone)
    entry = await self._cache.lookup(script_hash)
    if entry is not None:
      return await self._complete_from_cache(user_id=user_id, project_id=project_id, script=script, script_hash=script_hash, language=language, story_type=story_type, tone=tone, scenes=entry.scenes)

    return await self._enqueue_new_job(user_id=user_id, project_id=project_id, script=script, script_hash=script_hash, language=language, story_type=story_type, tone=tone)

  def _validate_script(self, script: str | None) -> str:
    trimmed = (script or "").strip()
    if len(trimmed) < self._script_min_chars:
      raise SubmissionValidationError(f"Script must be at least {self._script_min_chars} characters")
    if len(trimmed) > self._script_max_chars:
      raise SubmissionValidationError(f"Script must be at most {self._script_max_chars} characters")
    return trimmed

  async def _ensure_project_owner(self, user_id: str, project_id: str) -> None:
    project = await self._projects_repo.get_project(project_id)
    if project is None:
      raise ProjectNotFoundError("Project not found")
    if project.user_id != user_id:
      logger.warning("User %s denied access to project %s", user_id, project_id)
      raise ProjectAccessDeniedError("Not authorized to access this project")

  async def _find_live_active_job(self, user_id: str) -> JobRecord | None:
    """Return the user's active job, failing it first if it has gone stale."""
    active = await self._jobs_repo.find_active_job(user_id)
    if active is None:
      return None
    if self._clock() - active.updated_at <= self._stale_after:
      return active

    logger.warning("Recovering stale job %s for user %s (last update %s)", active.job_id, user_id, active.updated_at.isoformat())
    recovered = await self._jobs_repo.mark_stale(active.job_id)
    # The worker may have finished it between the two reads.
    if recovered is not None and not recovered.is_terminal:
      return recovered
    return None

  def _new_record(self, *, user_id: str, project_id: str, script: str, script_hash: str, language: str, story_type: str, tone: str) -> JobRecord:
    now = self._clock()
    return JobRecord(
      job_id=generate_job_id(),
      user_id=user_id,
      project_id=project_id,
      script=script,
      script_hash=script_hash,
      language=language,
      story_type=story_type,
      tone=tone,
      status="queued",
      created_at=now,
      updated_at=now,
      max_retries=self._max_retries,
    )

  async def _complete_from_cache(self, *, scenes: list[SceneDraft], **fields: str) -> SubmissionResult:
    now = self._clock()
    record = self._new_record(**fields)
    record.status = "completed"
    record.progress = 100
    record.scenes_generated = len(scenes)
    record.started_at = now
    record.completed_at = now
    await self._jobs_repo.create_job(record)

    # Materialize the cached scenes for this job so status reads look the same either way.
    rows = [
      SceneRecord(
        scene_id=generate_scene_id(),
        project_id=record.project_id,
        job_id=record.job_id,
        scene_order=order,
        title=scene.title,
        narration_text=scene.narration_text,
        visual_description=scene.visual_description,
        mood=scene.mood,
        estimated_duration=scene.estimated_duration,
      )
      for order, scene in enumerate(scenes, start=1)
    ]
    await self._scenes_repo.add_scenes(rows)
    logger.info("Served job %s from cache with %s scenes", record.job_id, len(scenes))
    return SubmissionResult(job=record, cached=True, scenes=list(scenes))

  async def _enqueue_new_job(self, **fields: str) -> SubmissionResult:
    record = self._new_record(**fields)
    record.scheduled_at = record.created_at
    try:
      await self._jobs_repo.create_job(record)
    except ActiveJobExistsError as exc:
      # Lost a race with a concurrent submission; redirect to the winner.
      return SubmissionResult(job=exc.existing, conflict=True)

    try:
      await self._enqueuer.enqueue(WorkerPayload.from_job(record))
    except Exception:
      logger.error("Dispatch failed for job %s", record.job_id, exc_info=True)
      await self._jobs_repo.update_job(record.job_id, status="failed", error_message=DISPATCH_FAILED_MESSAGE, completed_at=self._clock())
      raise

    logger.info("Queued job %s for user %s project %s", record.job_id, record.user_id, record.project_id)
    return SubmissionResult(job=record)
