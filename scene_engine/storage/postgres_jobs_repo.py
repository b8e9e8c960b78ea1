"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scene_engine.core.database import get_session_factory
from scene_engine.jobs.models import ACTIVE_STATUSES, ActiveJobExistsError, InvalidJobTransitionError, JobRecord, JobStatus, ensure_transition, is_terminal, utc_now
from scene_engine.schema.sql import GenerationJob
from scene_engine.storage.jobs_repo import STALE_JOB_MESSAGE, JobsRepository

logger = logging.getLogger(__name__)


class PostgresJobsRepository(JobsRepository):
  """Persist generation jobs to Postgres."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> JobRecord:
    async with self._session_factory() as session:
      session.add(self._record_to_model(record))
      try:
        await session.commit()
      except IntegrityError as exc:
        await session.rollback()
        # The partial unique index on active jobs is the single-flight arbiter.
        existing = await self._find_active_in_session(session, record.user_id) if record.status in ACTIVE_STATUSES else None
        if existing is None:
          raise
        logger.info("Rejected job %s for user %s; active job %s exists", record.job_id, record.user_id, existing.job_id)
        raise ActiveJobExistsError(existing) from exc
      return record

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def find_active_job(self, user_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      return await self._find_active_in_session(session, user_id)

  async def claim_job(self, job_id: str, *, started_at: datetime, progress: int, max_retries: int) -> JobRecord | None:
    async with self._session_factory() as session:
      # The status predicate makes the claim a single compare-and-set.
      stmt = (
        update(GenerationJob)
        .where(GenerationJob.job_id == job_id, GenerationJob.status == "queued")
        .values(status="processing", started_at=started_at, progress=progress, max_retries=max_retries, updated_at=utc_now())
        .returning(GenerationJob)
      )
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    progress: int | None = None,
    scenes_generated: int | None = None,
    retry_count: int | None = None,
    max_retries: int | None = None,
    started_at: datetime | None = None,
    completed_at: datetime | None = None,
    error_message: str | None = None,
  ) -> JobRecord | None:
    async with self._session_factory() as session:
      # Lock the row so a concurrent stale sweep cannot interleave with the worker.
      row = await session.get(GenerationJob, job_id, with_for_update=True)
      if row is None:
        return None
      target = status or row.status
      if is_terminal(row.status):
        raise InvalidJobTransitionError(job_id, row.status, target)
      ensure_transition(job_id, row.status, target)

      row.status = target
      if progress is not None:
        row.progress = progress
      if scenes_generated is not None:
        row.scenes_generated = scenes_generated
      if retry_count is not None:
        row.retry_count = retry_count
      if max_retries is not None:
        row.max_retries = max_retries
      if started_at is not None:
        row.started_at = started_at
      if completed_at is not None:
        row.completed_at = completed_at
      if error_message is not None:
        row.error_message = error_message
      row.updated_at = utc_now()
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def mark_stale(self, job_id: str, *, message: str = STALE_JOB_MESSAGE) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id, with_for_update=True)
      if row is None:
        return None
      if row.status in ACTIVE_STATUSES:
        now = utc_now()
        row.status = "failed"
        row.error_message = message
        row.completed_at = now
        row.updated_at = now
        await session.commit()
        await session.refresh(row)
        logger.warning("Marked stale job %s as failed", job_id)
      return self._model_to_record(row)

  async def _find_active_in_session(self, session: AsyncSession, user_id: str) -> JobRecord | None:
    stmt = select(GenerationJob).where(GenerationJob.user_id == user_id, GenerationJob.status.in_(ACTIVE_STATUSES)).order_by(GenerationJob.created_at.desc()).limit(1)
    row = (await session.execute(stmt)).scalar_one_or_none()
    if row is None:
      return None
    return self._model_to_record(row)

  @staticmethod
  def _record_to_model(record: JobRecord) -> GenerationJob:
    return GenerationJob(
      job_id=record.job_id,
      user_id=record.user_id,
      project_id=record.project_id,
      script_content=record.script,
      script_hash=record.script_hash,
      language=record.language,
      story_type=record.story_type,
      tone=record.tone,
      status=record.status,
      progress=record.progress,
      scenes_generated=record.scenes_generated,
      retry_count=record.retry_count,
      max_retries=record.max_retries,
      error_message=record.error_message,
      scheduled_at=record.scheduled_at,
      started_at=record.started_at,
      completed_at=record.completed_at,
      created_at=record.created_at,
      updated_at=record.updated_at,
    )

  @staticmethod
  def _model_to_record(row: GenerationJob) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      user_id=row.user_id,
      project_id=row.project_id,
      script=row.script_content,
      script_hash=row.script_hash,
      language=row.language,
      story_type=row.story_type,
      tone=row.tone,
      status=row.status,  # type: ignore[arg-type]
      progress=row.progress,
      scenes_generated=row.scenes_generated,
      retry_count=row.retry_count,
      max_retries=row.max_retries,
      error_message=row.error_message,
      scheduled_at=row.scheduled_at,
      started_at=row.started_at,
      completed_at=row.completed_at,
      created_at=row.created_at,
      updated_at=row.updated_at,
    )
