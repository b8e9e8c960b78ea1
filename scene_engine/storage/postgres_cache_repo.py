"""Postgres-backed scene cache keyed by input fingerprint."""

from __future__ import annotations

from datetime import datetime

from pydantic import TypeAdapter
from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scene_engine.core.database import get_session_factory
from scene_engine.schema.scenes import SceneDraft
from scene_engine.schema.sql import SceneCacheEntry
from scene_engine.storage.cache_repo import CacheEntry, SceneCacheRepository

_SCENES_ADAPTER = TypeAdapter(list[SceneDraft])


class PostgresSceneCacheRepository(SceneCacheRepository):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_valid(self, fingerprint: str, *, now: datetime) -> CacheEntry | None:
    async with self._session_factory() as session:
      # Expiry check and hit increment happen in one statement.
      stmt = (
        update(SceneCacheEntry)
        .where(SceneCacheEntry.fingerprint == fingerprint, SceneCacheEntry.expires_at > now)
        .values(hit_count=SceneCacheEntry.hit_count + 1)
        .returning(SceneCacheEntry)
      )
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return CacheEntry(
        fingerprint=row.fingerprint,
        language=row.language,
        story_type=row.story_type,
        tone=row.tone,
        scenes=_SCENES_ADAPTER.validate_python(row.scenes_json),
        expires_at=row.expires_at,
        hit_count=row.hit_count,
        created_at=row.created_at,
      )

  async def upsert(self, entry: CacheEntry) -> None:
    scenes_json = _SCENES_ADAPTER.dump_python(entry.scenes, mode="json")
    values = {"fingerprint": entry.fingerprint, "language": entry.language, "story_type": entry.story_type, "tone": entry.tone, "scenes_json": scenes_json, "hit_count": entry.hit_count, "expires_at": entry.expires_at}
    stmt = insert(SceneCacheEntry).values(**values)
    stmt = stmt.on_conflict_do_update(
      index_elements=[SceneCacheEntry.fingerprint],
      set_={"language": stmt.excluded.language, "story_type": stmt.excluded.story_type, "tone": stmt.excluded.tone, "scenes_json": stmt.excluded.scenes_json, "expires_at": stmt.excluded.expires_at},
    )
    async with self._session_factory() as session:
      await session.execute(stmt)
      await session.commit()
