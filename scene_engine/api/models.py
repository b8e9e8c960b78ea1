from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from scene_engine.jobs.models import JobStatus
from scene_engine.schema.scenes import SceneDraft


def _to_camel(string: str) -> str:
  """Convert snake_case to camelCase so the API speaks frontend-style payloads."""
  parts = string.split("_")
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class CamelModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel)


class SubmitJobRequest(CamelModel):
  """Request payload for scene generation."""

  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="forbid")

  project_id: StrictStr = Field(min_length=1, description="Project that will own the generated scenes.")
  script: StrictStr = Field(description="Narration script to split into scenes.")
  language: StrictStr | None = Field(default=None, description="hindi, hinglish or english; unknown values use hindi.")
  story_type: StrictStr | None = Field(default=None, description="kids, bedtime or moral; unknown values use kids.")
  tone: StrictStr | None = Field(default=None, description="calm, emotional or dramatic; unknown values use calm.")


class SubmitJobResponse(CamelModel):
  """Accepted submission. Cached submissions are already completed and carry their scenes."""

  job_id: StrictStr
  status: JobStatus
  cached: bool
  scenes: list[SceneDraft] | None = None


class JobConflictResponse(CamelModel):
  """The caller already has an active job; poll it instead of starting another."""

  job_id: StrictStr
  status: JobStatus
  conflict: Literal[True] = True


class JobStatusResponse(CamelModel):
  """Status payload for a generation job."""

  job_id: StrictStr
  status: JobStatus
  progress: int = Field(ge=0, le=100)
  scenes_generated: int = Field(ge=0)
  failure_reason: StrictStr | None = None
  scenes: list[SceneDraft] | None = None
  created_at: datetime | None = None
  started_at: datetime | None = None
  completed_at: datetime | None = None


class SessionResponse(CamelModel):
  user_id: StrictStr
