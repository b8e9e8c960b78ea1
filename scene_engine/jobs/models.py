"""Domain models for asynchronous scene generation jobs."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Literal

JobStatus = Literal["queued", "processing", "completed", "failed"]

ACTIVE_STATUSES: frozenset[str] = frozenset({"queued", "processing"})
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Same-state edges carry progress updates; terminal states have no outgoing edges.
_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "queued": frozenset({"queued", "processing", "failed"}),
  "processing": frozenset({"processing", "completed", "failed"}),
  "completed": frozenset(),
  "failed": frozenset(),
}


class InvalidJobTransitionError(Exception):
  """Raised when a write would move a job along an edge the state machine forbids."""

  def __init__(self, job_id: str, current: str, target: str) -> None:
    super().__init__(f"Job {job_id} cannot move from {current} to {target}.")
    self.job_id = job_id
    self.current = current
    self.target = target


class ActiveJobExistsError(Exception):
  """Raised when a user already owns a non-terminal job."""

  def __init__(self, existing: JobRecord) -> None:
    super().__init__(f"User {existing.user_id} already has active job {existing.job_id}.")
    self.existing = existing


def utc_now() -> datetime:
  return datetime.now(UTC)


def is_terminal(status: str) -> bool:
  return status in TERMINAL_STATUSES


def ensure_transition(job_id: str, current: str, target: str) -> None:
  """Raise when `current -> target` is not an edge of the job state machine."""
  if target not in _ALLOWED_TRANSITIONS.get(current, frozenset()):
    raise InvalidJobTransitionError(job_id, current, target)


@dataclass
class JobRecord:
  """Represents one scene generation job."""

  job_id: str
  user_id: str
  project_id: str
  script: str
  script_hash: str
  language: str
  story_type: str
  tone: str
  status: JobStatus
  created_at: datetime
  updated_at: datetime
  progress: int = 0
  scenes_generated: int = 0
  retry_count: int = 0
  max_retries: int = 0
  scheduled_at: datetime | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None
  error_message: str | None = None

  @property
  def is_terminal(self) -> bool:
    return is_terminal(self.status)


@dataclass(frozen=True)
class WorkerPayload:
  """Everything the worker needs to process one queued job."""

  job_id: str
  project_id: str
  script: str
  language: str
  story_type: str
  tone: str
  fingerprint: str

  @classmethod
  def from_job(cls, job: JobRecord) -> WorkerPayload:
    return cls(job_id=job.job_id, project_id=job.project_id, script=job.script, language=job.language, story_type=job.story_type, tone=job.tone, fingerprint=job.script_hash)

  def to_dict(self) -> dict[str, Any]:
    return asdict(self)
