from __future__ import annotations

import asyncio

import pytest

from scene_engine.ai.backoff import BackoffPolicy
from scene_engine.ai.client import TextGenerationClient
from scene_engine.ai.providers.base import AIModel, ModelResponse, SimpleModelResponse
from scene_engine.jobs.models import WorkerPayload
from scene_engine.jobs.worker import CANCELLED_MESSAGE, SceneJobWorker
from scene_engine.services.scene_cache import SceneCache
from tests.fakes import FakeClock, InMemoryCacheRepo, InMemoryJobsRepo, InMemoryScenesRepo, RecordingSleep, ScriptedModel, make_job, rate_limited, scenes_json

SIXTY_CHARS = "The fox ran home. The moon rose high. Everyone slept soundly."


class _Harness:
  def __init__(self, model: AIModel, *, chunk_max_chars: int = 4000, max_retries: int = 3) -> None:
    self.clock = FakeClock()
    self.sleep = RecordingSleep()
    self.jobs = InMemoryJobsRepo(self.clock)
    self.scenes = InMemoryScenesRepo()
    self.cache_repo = InMemoryCacheRepo()
    client = TextGenerationClient(model, policy=BackoffPolicy(max_retries=max_retries, base_seconds=2.0, jitter_seconds=0.0), sleep=self.sleep)
    self.worker = SceneJobWorker(
      jobs_repo=self.jobs,
      scenes_repo=self.scenes,
      cache=SceneCache(self.cache_repo, ttl_seconds=3600, clock=self.clock),
      client=client,
      chunk_max_chars=chunk_max_chars,
      inter_chunk_delay_seconds=1.5,
      sleep=self.sleep,
      clock=self.clock,
    )

  def queue(self, script: str, *, status: str = "queued") -> WorkerPayload:
    job = make_job(script=script, status=status)
    self.jobs.put(job)
    return WorkerPayload.from_job(job)


def _long_script(sentences: int = 90) -> str:
  parts = []
  for index in range(sentences):
    body = f"Sentence {index} "
    parts.append(body + "x" * (100 - len(body) - 1) + ".")
  return " ".join(parts)


@pytest.mark.anyio
async def test_single_chunk_job_completes_and_caches() -> None:
  model = ScriptedModel(responses=[scenes_json("Home", "Night")])
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "completed"
  assert job.progress == 100
  assert job.scenes_generated == 2
  assert job.started_at is not None
  assert job.completed_at is not None
  assert model.calls == 1
  assert [row.scene_order for row in await harness.scenes.list_scenes_for_job(payload.job_id)] == [1, 2]
  assert [scene.title for scene in harness.cache_repo.entries[payload.fingerprint].scenes] == ["Home", "Night"]


@pytest.mark.anyio
async def test_progress_is_monotonic_across_chunks() -> None:
  model = ScriptedModel(default=scenes_json("Part"))
  harness = _Harness(model)
  payload = harness.queue(_long_script())

  job = await harness.worker.run(payload)

  history = harness.jobs.progress_history[payload.job_id]
  assert job is not None and job.status == "completed"
  assert model.calls == 3
  assert history == sorted(history)
  assert {33, 61, 90}.issubset(history)
  assert history[-1] == 100
  assert job.scenes_generated == 3
  # Calls are spaced out and never overlap.
  assert harness.sleep.delays == [1.5, 1.5]
  assert model.max_in_flight == 1


@pytest.mark.anyio
async def test_rate_limited_chunk_recovers_after_backoff() -> None:
  model = ScriptedModel(responses=[rate_limited(), rate_limited(), scenes_json("Recovered")])
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "completed"
  assert job.retry_count == 2
  assert job.max_retries == 3
  assert harness.sleep.delays == [2.0, 4.0]
  assert harness.sleep.total >= 6.0


@pytest.mark.anyio
async def test_parse_failure_keeps_earlier_scenes() -> None:
  model = ScriptedModel(responses=[scenes_json("First", "Second"), "this is not json"])
  harness = _Harness(model, chunk_max_chars=40)
  payload = harness.queue("The fox ran home in the dark. The moon rose high above them.")

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "failed"
  assert "parse" in (job.error_message or "").lower()
  assert job.scenes_generated == 2
  assert len(await harness.scenes.list_scenes_for_job(payload.job_id)) == 2
  assert harness.cache_repo.entries == {}


@pytest.mark.anyio
async def test_exhausted_retries_fail_the_job() -> None:
  model = ScriptedModel(default=None, responses=[rate_limited() for _ in range(4)])
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "failed"
  assert job.error_message == "AI service rate limit exceeded after 4 attempts"
  assert job.retry_count == 3


@pytest.mark.anyio
async def test_empty_scene_list_fails_the_job() -> None:
  harness = _Harness(ScriptedModel(responses=["[]"]))
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "failed"
  assert "no scenes" in (job.error_message or "")
  assert harness.cache_repo.entries == {}


@pytest.mark.anyio
async def test_unexpected_error_still_finalizes() -> None:
  harness = _Harness(ScriptedModel(responses=[scenes_json("One")]))
  harness.scenes.fail_on_order = 1
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "failed"
  assert job.error_message == "RuntimeError: scene insert failed"
  assert job.completed_at is not None


@pytest.mark.anyio
async def test_cache_write_failure_does_not_fail_the_job() -> None:
  harness = _Harness(ScriptedModel(responses=[scenes_json("One")]))
  harness.cache_repo.fail_on_upsert = True
  payload = harness.queue(SIXTY_CHARS)

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "completed"


class _BlockingModel(AIModel):
  def __init__(self) -> None:
    self.name = "blocking"
    self.started = asyncio.Event()
    self._release = asyncio.Event()

  async def generate(self, prompt: str) -> ModelResponse:
    self.started.set()
    await self._release.wait()
    return SimpleModelResponse(content="[]")


@pytest.mark.anyio
async def test_cancellation_is_recorded_and_reraised() -> None:
  model = _BlockingModel()
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS)

  task = asyncio.create_task(harness.worker.run(payload))
  await model.started.wait()
  task.cancel()
  with pytest.raises(asyncio.CancelledError):
    await task

  job = await harness.jobs.get_job(payload.job_id)
  assert job is not None
  assert job.status == "failed"
  assert job.error_message == CANCELLED_MESSAGE


@pytest.mark.anyio
async def test_duplicate_trigger_skips_non_queued_job() -> None:
  model = ScriptedModel(responses=[scenes_json("One")])
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS, status="processing")

  job = await harness.worker.run(payload)

  assert job is not None
  assert job.status == "processing"
  assert model.calls == 0


@pytest.mark.anyio
async def test_concurrent_triggers_process_the_job_once() -> None:
  model = ScriptedModel(default=scenes_json("One", "Two"))
  harness = _Harness(model)
  payload = harness.queue(SIXTY_CHARS)

  results = await asyncio.gather(harness.worker.run(payload), harness.worker.run(payload))

  assert any(job is not None and job.status == "completed" for job in results)
  assert model.calls == 1
  assert model.max_in_flight == 1
  assert [row.scene_order for row in await harness.scenes.list_scenes_for_job(payload.job_id)] == [1, 2]
  job = await harness.jobs.get_job(payload.job_id)
  assert job is not None
  assert job.status == "completed"
  assert job.scenes_generated == 2


@pytest.mark.anyio
async def test_missing_job_is_ignored() -> None:
  harness = _Harness(ScriptedModel())
  payload = WorkerPayload(job_id="missing", project_id="p", script=SIXTY_CHARS, language="hindi", story_type="kids", tone="calm", fingerprint="0" * 64)
  assert await harness.worker.run(payload) is None
