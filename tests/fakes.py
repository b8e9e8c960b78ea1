"""In-memory collaborators shared by the unit tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

from scene_engine.ai.errors import ProviderHTTPError
from scene_engine.ai.providers.base import AIModel, ModelResponse, SimpleModelResponse
from scene_engine.jobs.models import ActiveJobExistsError, InvalidJobTransitionError, JobRecord, WorkerPayload, ensure_transition
from scene_engine.storage.cache_repo import CacheEntry
from scene_engine.storage.jobs_repo import STALE_JOB_MESSAGE
from scene_engine.storage.projects_repo import ProjectRecord
from scene_engine.storage.rate_limit_store import WindowSnapshot
from scene_engine.storage.scenes_repo import SceneRecord

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
  """Settable wall clock for code that takes a `clock` callable."""

  def __init__(self, start: datetime = EPOCH) -> None:
    self.now = start

  def __call__(self) -> datetime:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now += timedelta(seconds=seconds)


class RecordingSleep:
  """Records requested delays without waiting."""

  def __init__(self) -> None:
    self.delays: list[float] = []

  async def __call__(self, seconds: float) -> None:
    self.delays.append(seconds)
    await asyncio.sleep(0)

  @property
  def total(self) -> float:
    return sum(self.delays)


class InMemoryJobsRepo:
  """Jobs repo with the same single-flight and transition rules as Postgres."""

  def __init__(self, clock: FakeClock | None = None) -> None:
    self._clock = clock or FakeClock()
    self._jobs: dict[str, JobRecord] = {}
    self._lock = asyncio.Lock()
    self.progress_history: dict[str, list[int]] = {}

  async def create_job(self, record: JobRecord) -> JobRecord:
    async with self._lock:
      await asyncio.sleep(0)
      if not record.is_terminal:
        existing = self._active_for(record.user_id)
        if existing is not None:
          raise ActiveJobExistsError(replace(existing))
      self._jobs[record.job_id] = replace(record)
      return replace(record)

  async def get_job(self, job_id: str) -> JobRecord | None:
    record = self._jobs.get(job_id)
    return replace(record) if record is not None else None

  async def find_active_job(self, user_id: str) -> JobRecord | None:
    existing = self._active_for(user_id)
    return replace(existing) if existing is not None else None

  async def claim_job(self, job_id: str, *, started_at: datetime, progress: int, max_retries: int) -> JobRecord | None:
    async with self._lock:
      await asyncio.sleep(0)
      record = self._jobs.get(job_id)
      if record is None or record.status != "queued":
        return None
      claimed = replace(record, status="processing", started_at=started_at, progress=progress, max_retries=max_retries, updated_at=self._clock())
      self._jobs[job_id] = claimed
      self.progress_history.setdefault(job_id, []).append(claimed.progress)
      return replace(claimed)

  async def update_job(self, job_id: str, *, status=None, progress=None, scenes_generated=None, retry_count=None, max_retries=None, started_at=None, completed_at=None, error_message=None) -> JobRecord | None:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None:
        return None
      target = status or record.status
      if record.is_terminal:
        raise InvalidJobTransitionError(job_id, record.status, target)
      ensure_transition(job_id, record.status, target)
      changes = {
        "status": status,
        "progress": progress,
        "scenes_generated": scenes_generated,
        "retry_count": retry_count,
        "max_retries": max_retries,
        "started_at": started_at,
        "completed_at": completed_at,
        "error_message": error_message,
      }
      updated = replace(record, **{key: value for key, value in changes.items() if value is not None}, updated_at=self._clock())
      self._jobs[job_id] = updated
      self.progress_history.setdefault(job_id, []).append(updated.progress)
      return replace(updated)

  async def mark_stale(self, job_id: str, *, message: str = STALE_JOB_MESSAGE) -> JobRecord | None:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None:
        return None
      if not record.is_terminal:
        record = replace(record, status="failed", error_message=message, completed_at=self._clock(), updated_at=self._clock())
        self._jobs[job_id] = record
      return replace(record)

  def all_jobs(self) -> list[JobRecord]:
    return [replace(record) for record in self._jobs.values()]

  def put(self, record: JobRecord) -> None:
    self._jobs[record.job_id] = replace(record)

  def _active_for(self, user_id: str) -> JobRecord | None:
    return next((job for job in self._jobs.values() if job.user_id == user_id and not job.is_terminal), None)


class InMemoryScenesRepo:
  def __init__(self) -> None:
    self.rows: list[SceneRecord] = []
    self.fail_on_order: int | None = None

  async def add_scene(self, record: SceneRecord) -> None:
    if record.scene_order == self.fail_on_order:
      raise RuntimeError("scene insert failed")
    if any(row.job_id == record.job_id and row.scene_order == record.scene_order for row in self.rows):
      raise ValueError(f"duplicate scene order {record.scene_order} for job {record.job_id}")
    self.rows.append(record)

  async def add_scenes(self, records: Sequence[SceneRecord]) -> None:
    for record in records:
      await self.add_scene(record)

  async def list_scenes_for_job(self, job_id: str) -> list[SceneRecord]:
    return sorted((row for row in self.rows if row.job_id == job_id), key=lambda row: row.scene_order)


class InMemoryCacheRepo:
  def __init__(self) -> None:
    self.entries: dict[str, CacheEntry] = {}
    self.fail_on_upsert = False

  async def get_valid(self, fingerprint: str, *, now: datetime) -> CacheEntry | None:
    entry = self.entries.get(fingerprint)
    if entry is None or entry.expires_at <= now:
      return None
    entry.hit_count += 1
    return replace(entry, scenes=list(entry.scenes))

  async def upsert(self, entry: CacheEntry) -> None:
    if self.fail_on_upsert:
      raise RuntimeError("cache unavailable")
    self.entries[entry.fingerprint] = replace(entry, scenes=list(entry.scenes))


class InMemoryProjectsRepo:
  def __init__(self, *projects: ProjectRecord) -> None:
    self._projects = {project.project_id: project for project in projects}

  async def get_project(self, project_id: str) -> ProjectRecord | None:
    return self._projects.get(project_id)


class InMemoryRateLimitStore:
  def __init__(self) -> None:
    self.events: dict[str, list[datetime]] = {}
    self._lock = asyncio.Lock()

  async def record_if_under(self, user_id: str, *, now: datetime, window_start: datetime, limit: int) -> WindowSnapshot:
    async with self._lock:
      events = [event for event in self.events.get(user_id, []) if event > window_start]
      oldest = min(events) if events else None
      if len(events) >= limit:
        self.events[user_id] = events
        return WindowSnapshot(count=len(events), oldest=oldest, recorded=False)
      events.append(now)
      self.events[user_id] = events
      return WindowSnapshot(count=len(events), oldest=oldest or now, recorded=True)


@dataclass
class ScriptedModel(AIModel):
  """Returns scripted responses in order; exceptions in the script are raised."""

  responses: list[str | Exception] = field(default_factory=list)
  default: str | None = None
  name: str = "scripted"
  prompts: list[str] = field(default_factory=list)
  in_flight: int = 0
  max_in_flight: int = 0

  async def generate(self, prompt: str) -> ModelResponse:
    self.prompts.append(prompt)
    self.in_flight += 1
    self.max_in_flight = max(self.max_in_flight, self.in_flight)
    try:
      await asyncio.sleep(0)
      item = self.responses.pop(0) if self.responses else self.default
      if item is None:
        raise AssertionError("ScriptedModel ran out of responses")
      if isinstance(item, Exception):
        raise item
      return SimpleModelResponse(content=item)
    finally:
      self.in_flight -= 1

  @property
  def calls(self) -> int:
    return len(self.prompts)


class RecordingEnqueuer:
  def __init__(self, *, fail: bool = False) -> None:
    self.payloads: list[WorkerPayload] = []
    self._fail = fail

  async def enqueue(self, payload: WorkerPayload) -> None:
    if self._fail:
      raise RuntimeError("queue unavailable")
    self.payloads.append(payload)


def rate_limited() -> ProviderHTTPError:
  return ProviderHTTPError(429)


def scenes_json(*titles: str) -> str:
  """Model response with one scene per title."""
  return json.dumps([{"title": title, "narration_text": f"{title} narration.", "visual_description": f"{title} visual.", "mood": "happy", "estimated_duration": 6} for title in titles])


def make_job(job_id: str = "job-1", *, user_id: str = "user-1", project_id: str = "project-1", script: str = "Once upon a time. The end.", status: str = "queued", updated_at: datetime = EPOCH, fingerprint: str = "f" * 64) -> JobRecord:
  return JobRecord(
    job_id=job_id,
    user_id=user_id,
    project_id=project_id,
    script=script,
    script_hash=fingerprint,
    language="english",
    story_type="kids",
    tone="calm",
    status=status,  # type: ignore[arg-type]
    created_at=updated_at,
    updated_at=updated_at,
  )
