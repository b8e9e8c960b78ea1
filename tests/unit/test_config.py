from __future__ import annotations

import pytest

from scene_engine.config import get_settings
from scene_engine.core.database import database_url, get_database_settings


@pytest.fixture
def fresh_settings():
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield
  get_settings.cache_clear()
  get_database_settings.cache_clear()


def test_defaults(fresh_settings, monkeypatch) -> None:
  for name in ("SCENES_CHUNK_MAX_CHARS", "SCENES_RATE_LIMIT_MAX_REQUESTS", "SCENES_STALE_JOB_SECONDS", "SCENES_TASK_SERVICE_PROVIDER"):
    monkeypatch.delenv(name, raising=False)
  settings = get_settings()
  assert settings.chunk_max_chars == 4000
  assert settings.rate_limit_max_requests == 5
  assert settings.rate_limit_window_seconds == 60
  assert settings.stale_job_seconds == 900
  assert settings.task_service_provider == "in-process"


def test_rejects_wildcard_origin(fresh_settings, monkeypatch) -> None:
  monkeypatch.setenv("SCENES_ALLOWED_ORIGINS", "*")
  with pytest.raises(ValueError, match="wildcard"):
    get_settings()


def test_rejects_jitter_above_base(fresh_settings, monkeypatch) -> None:
  monkeypatch.setenv("SCENES_LLM_BACKOFF_BASE_SECONDS", "1")
  monkeypatch.setenv("SCENES_LLM_BACKOFF_JITTER_SECONDS", "2")
  with pytest.raises(ValueError, match="JITTER"):
    get_settings()


def test_database_url_forces_asyncpg(fresh_settings, monkeypatch) -> None:
  monkeypatch.setenv("SCENES_PG_DSN", "postgres://scenes:pw@localhost:5432/scenes")
  assert database_url() == "postgresql+asyncpg://scenes:pw@localhost:5432/scenes"
