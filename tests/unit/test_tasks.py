from __future__ import annotations

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from scene_engine.config import get_settings
from scene_engine.jobs.models import WorkerPayload
from scene_engine.services.tasks.in_process import InProcessEnqueuer
from scene_engine.services.tasks.local import TASK_PATH, LocalHttpEnqueuer

PAYLOAD = WorkerPayload(job_id="job-1", project_id="project-1", script="Once upon a time.", language="hindi", story_type="kids", tone="calm", fingerprint="a" * 64)


@pytest.mark.anyio
async def test_local_enqueuer_posts_payload_with_secret() -> None:
  settings = replace(get_settings(), task_service_provider="local-http", base_url="http://worker:8080/", task_secret="s3cret")
  enqueuer = LocalHttpEnqueuer(settings)

  with patch("scene_engine.services.tasks.local.httpx.AsyncClient") as mock_client_cls:
    mock_client = AsyncMock()
    mock_client_cls.return_value.__aenter__.return_value = mock_client
    mock_client.post.return_value = MagicMock(spec=httpx.Response)

    await enqueuer.enqueue(PAYLOAD)

    mock_client_cls.assert_called_once_with(trust_env=False)
    mock_client.post.assert_called_once()
    args, kwargs = mock_client.post.call_args
    assert args[0] == f"http://worker:8080{TASK_PATH}"
    assert kwargs["json"] == PAYLOAD.to_dict()
    assert kwargs["headers"] == {"authorization": "Bearer s3cret"}


@pytest.mark.anyio
async def test_local_enqueuer_requires_base_url() -> None:
  settings = replace(get_settings(), base_url=None, task_secret="s3cret")
  with pytest.raises(RuntimeError, match="Base URL not configured"):
    await LocalHttpEnqueuer(settings).enqueue(PAYLOAD)


@pytest.mark.anyio
async def test_local_enqueuer_propagates_transport_errors() -> None:
  settings = replace(get_settings(), base_url="http://worker:8080", task_secret="s3cret")

  with patch("scene_engine.services.tasks.local.httpx.AsyncClient") as mock_client_cls:
    mock_client = AsyncMock()
    mock_client_cls.return_value.__aenter__.return_value = mock_client
    mock_client.post.side_effect = httpx.ConnectError("refused")

    with pytest.raises(httpx.ConnectError):
      await LocalHttpEnqueuer(settings).enqueue(PAYLOAD)


@pytest.mark.anyio
async def test_in_process_enqueuer_runs_job_in_background() -> None:
  seen: list[str] = []

  async def runner(payload: WorkerPayload):
    await asyncio.sleep(0)
    seen.append(payload.job_id)
    return None

  enqueuer = InProcessEnqueuer(runner)
  await enqueuer.enqueue(PAYLOAD)
  assert enqueuer.pending == 1

  await enqueuer.drain()

  assert seen == ["job-1"]
  assert enqueuer.pending == 0


@pytest.mark.anyio
async def test_in_process_shutdown_cancels_running_jobs() -> None:
  cancelled = asyncio.Event()

  async def runner(payload: WorkerPayload):
    try:
      await asyncio.Event().wait()
    except asyncio.CancelledError:
      cancelled.set()
      raise

  enqueuer = InProcessEnqueuer(runner)
  await enqueuer.enqueue(PAYLOAD)
  await asyncio.sleep(0)

  await enqueuer.shutdown()

  assert cancelled.is_set()
