"""Postgres-backed scene storage."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scene_engine.core.database import get_session_factory
from scene_engine.schema.sql import Scene
from scene_engine.storage.scenes_repo import SceneRecord, ScenesRepository


def _to_model(record: SceneRecord) -> Scene:
  return Scene(
    id=record.scene_id,
    project_id=record.project_id,
    job_id=record.job_id,
    scene_order=record.scene_order,
    title=record.title,
    narration_text=record.narration_text,
    visual_description=record.visual_description,
    mood=record.mood,
    estimated_duration=record.estimated_duration,
  )


def _to_record(row: Scene) -> SceneRecord:
  return SceneRecord(
    scene_id=row.id,
    project_id=row.project_id,
    job_id=row.job_id,
    scene_order=row.scene_order,
    title=row.title,
    narration_text=row.narration_text,
    visual_description=row.visual_description,
    mood=row.mood,
    estimated_duration=row.estimated_duration,
  )


class PostgresScenesRepository(ScenesRepository):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def add_scene(self, record: SceneRecord) -> None:
    async with self._session_factory() as session:
      session.add(_to_model(record))
      await session.commit()

  async def add_scenes(self, records: Sequence[SceneRecord]) -> None:
    if not records:
      return
    async with self._session_factory() as session:
      session.add_all([_to_model(record) for record in records])
      await session.commit()

  async def list_scenes_for_job(self, job_id: str) -> list[SceneRecord]:
    async with self._session_factory() as session:
      stmt = select(Scene).where(Scene.job_id == job_id).order_by(Scene.scene_order.asc())
      rows = (await session.execute(stmt)).scalars().all()
      return [_to_record(row) for row in rows]
