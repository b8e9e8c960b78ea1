"""Repository interface for project ownership lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ProjectRecord:
  project_id: str
  user_id: str
  title: str


class ProjectsRepository(Protocol):
  async def get_project(self, project_id: str) -> ProjectRecord | None:
    """Fetch a project by identifier."""
