"""Fingerprint-keyed cache of generated scene sets."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from scene_engine.jobs.models import utc_now
from scene_engine.schema.scenes import SceneDraft
from scene_engine.storage.cache_repo import CacheEntry, SceneCacheRepository

logger = logging.getLogger(__name__)


class SceneCache:
  def __init__(self, repo: SceneCacheRepository, *, ttl_seconds: int, clock: Callable[[], datetime] = utc_now) -> None:
    self._repo = repo
    self._ttl = timedelta(seconds=ttl_seconds)
    self._clock = clock

  async def lookup(self, fingerprint: str) -> CacheEntry | None:
    """Return an unexpired entry; a hit increments its hit count."""
    entry = await self._repo.get_valid(fingerprint, now=self._clock())
    if entry is not None:
      logger.info("Cache hit fingerprint=%s hits=%s scenes=%s", fingerprint, entry.hit_count, len(entry.scenes))
    return entry

  async def store(self, fingerprint: str, *, language: str, story_type: str, tone: str, scenes: Sequence[SceneDraft], ttl: timedelta | None = None) -> CacheEntry:
    """Upsert the scene list for `fingerprint`, overwriting any previous entry."""
    entry = CacheEntry(fingerprint=fingerprint, language=language, story_type=story_type, tone=tone, scenes=list(scenes), expires_at=self._clock() + (ttl or self._ttl))
    await self._repo.upsert(entry)
    return entry
