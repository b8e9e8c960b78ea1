from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scene_engine.core.database import get_session_factory
from scene_engine.schema.sql import Project
from scene_engine.storage.projects_repo import ProjectRecord, ProjectsRepository


class PostgresProjectsRepository(ProjectsRepository):
  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_project(self, project_id: str) -> ProjectRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Project, project_id)
      if row is None:
        return None
      return ProjectRecord(project_id=row.id, user_id=row.user_id, title=row.title)
