"""Per-user sliding-window submission limits."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from scene_engine.jobs.models import utc_now
from scene_engine.storage.rate_limit_store import RateLimitStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
  allowed: bool
  remaining: int
  retry_after_seconds: int


class SlidingWindowRateLimiter:
  """Allow at most `max_requests` submissions per user in any rolling `window_seconds`."""

  def __init__(self, store: RateLimitStore, *, max_requests: int, window_seconds: int, clock: Callable[[], datetime] = utc_now) -> None:
    self._store = store
    self.max_requests = max_requests
    self.window = timedelta(seconds=window_seconds)
    self._clock = clock

  async def acquire(self, user_id: str) -> RateLimitDecision:
    """Consume one slot if available. A rejected call consumes nothing."""
    now = self._clock()
    snapshot = await self._store.record_if_under(user_id, now=now, window_start=now - self.window, limit=self.max_requests)
    if snapshot.recorded:
      return RateLimitDecision(allowed=True, remaining=max(self.max_requests - snapshot.count, 0), retry_after_seconds=0)

    # The oldest event in the window is the next one to age out.
    oldest = snapshot.oldest or now
    retry_after = max(math.ceil((oldest + self.window - now).total_seconds()), 1)
    logger.info("Rate limit hit user=%s count=%s retry_after=%ss", user_id, snapshot.count, retry_after)
    return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=retry_after)
