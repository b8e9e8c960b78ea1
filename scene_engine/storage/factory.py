from __future__ import annotations

from scene_engine.config import Settings
from scene_engine.storage.cache_repo import SceneCacheRepository
from scene_engine.storage.jobs_repo import JobsRepository
from scene_engine.storage.postgres_cache_repo import PostgresSceneCacheRepository
from scene_engine.storage.postgres_jobs_repo import PostgresJobsRepository
from scene_engine.storage.postgres_projects_repo import PostgresProjectsRepository
from scene_engine.storage.postgres_rate_limit_store import PostgresRateLimitStore
from scene_engine.storage.postgres_scenes_repo import PostgresScenesRepository
from scene_engine.storage.projects_repo import ProjectsRepository
from scene_engine.storage.rate_limit_store import RateLimitStore
from scene_engine.storage.scenes_repo import ScenesRepository


def _require_pg(settings: Settings) -> None:
  # Enforce Postgres-backed storage for all job state.
  if not settings.pg_dsn:
    raise ValueError("SCENES_PG_DSN must be set to enable Postgres persistence.")


def get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""
  _require_pg(settings)
  return PostgresJobsRepository()


def get_scenes_repo(settings: Settings) -> ScenesRepository:
  _require_pg(settings)
  return PostgresScenesRepository()


def get_cache_repo(settings: Settings) -> SceneCacheRepository:
  _require_pg(settings)
  return PostgresSceneCacheRepository()


def get_projects_repo(settings: Settings) -> ProjectsRepository:
  _require_pg(settings)
  return PostgresProjectsRepository()


def get_rate_limit_store(settings: Settings) -> RateLimitStore:
  _require_pg(settings)
  return PostgresRateLimitStore()
