"""Repository interface for persisted scenes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from scene_engine.schema.scenes import SceneDraft


@dataclass(frozen=True)
class SceneRecord:
  """A scene row owned by a project and produced by one job."""

  scene_id: str
  project_id: str
  job_id: str
  scene_order: int
  title: str
  narration_text: str
  visual_description: str
  mood: str
  estimated_duration: int

  def to_draft(self) -> SceneDraft:
    return SceneDraft(title=self.title, narration_text=self.narration_text, visual_description=self.visual_description, mood=self.mood, estimated_duration=self.estimated_duration)


class ScenesRepository(Protocol):
  """Storage contract for scenes."""

  async def add_scene(self, record: SceneRecord) -> None:
    """Insert one scene; raises on a duplicate (job, order) pair."""

  async def add_scenes(self, records: Sequence[SceneRecord]) -> None:
    """Insert several scenes in one transaction."""

  async def list_scenes_for_job(self, job_id: str) -> list[SceneRecord]:
    """Return a job's scenes ordered by scene order."""
