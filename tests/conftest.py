"""Test configuration for importing the application package."""

from __future__ import annotations

import os
import tempfile

# Settings are read once per process, so the environment must be ready before any app import.
os.environ.setdefault("SCENES_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("SCENES_LOG_DIR", tempfile.mkdtemp(prefix="scene-engine-logs-"))
os.environ.setdefault("SCENES_TASK_SECRET", "test-task-secret")
os.environ.setdefault("SCENES_LLM_PROVIDER", "dummy")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from scene_engine.main import app  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
async def async_client():
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
