"""Storage interface for sliding-window submission counting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class WindowSnapshot:
  """Submissions inside the window as seen by one atomic check."""

  count: int
  oldest: datetime | None
  recorded: bool


class RateLimitStore(Protocol):
  async def record_if_under(self, user_id: str, *, now: datetime, window_start: datetime, limit: int) -> WindowSnapshot:
    """Count events after `window_start` and record `now` only when the count is below `limit`.

    Counting and recording must be atomic per user so concurrent submissions
    cannot both observe the last free slot.
    """
