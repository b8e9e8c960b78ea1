"""Repository interface for the fingerprint-keyed scene cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from scene_engine.schema.scenes import SceneDraft


@dataclass
class CacheEntry:
  """A previously generated scene set for one normalized input."""

  fingerprint: str
  language: str
  story_type: str
  tone: str
  scenes: list[SceneDraft]
  expires_at: datetime
  hit_count: int = 0
  created_at: datetime | None = field(default=None)


class SceneCacheRepository(Protocol):
  """Storage contract for cache entries."""

  async def get_valid(self, fingerprint: str, *, now: datetime) -> CacheEntry | None:
    """Return an unexpired entry and increment its hit count in the same write."""

  async def upsert(self, entry: CacheEntry) -> None:
    """Insert or overwrite the entry for `entry.fingerprint`."""
