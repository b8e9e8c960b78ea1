"""Postgres-backed sliding-window submission log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scene_engine.core.database import get_session_factory
from scene_engine.schema.sql import SubmissionEvent
from scene_engine.storage.rate_limit_store import RateLimitStore, WindowSnapshot


class PostgresRateLimitStore(RateLimitStore):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def record_if_under(self, user_id: str, *, now: datetime, window_start: datetime, limit: int) -> WindowSnapshot:
    async with self._session_factory() as session, session.begin():
      # Serialize count-then-insert per user for the lifetime of this transaction.
      await session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": f"scene-submissions:{user_id}"})
      await session.execute(delete(SubmissionEvent).where(SubmissionEvent.user_id == user_id, SubmissionEvent.created_at <= window_start))
      stmt = select(func.count(SubmissionEvent.id), func.min(SubmissionEvent.created_at)).where(SubmissionEvent.user_id == user_id, SubmissionEvent.created_at > window_start)
      count, oldest = (await session.execute(stmt)).one()
      if count >= limit:
        return WindowSnapshot(count=count, oldest=oldest, recorded=False)
      session.add(SubmissionEvent(user_id=user_id, created_at=now))
      return WindowSnapshot(count=count + 1, oldest=oldest or now, recorded=True)
