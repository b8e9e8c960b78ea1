"""Retry logic with exponential backoff and bounded jitter."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
RetryHook = Callable[[int, float, BaseException], Awaitable[None]]


class RetriesExhaustedError(Exception):
  """Raised when every allowed attempt failed with a retryable error."""

  def __init__(self, attempts: int, last_error: BaseException) -> None:
    super().__init__(f"Gave up after {attempts} attempts: {last_error}")
    self.attempts = attempts
    self.last_error = last_error


@dataclass(frozen=True)
class BackoffPolicy:
  """`delay(n) = base * 2**n + uniform(0, jitter)` for retry n (0-based).

  With `jitter <= base` successive delays never decrease.
  """

  max_retries: int = 3
  base_seconds: float = 2.0
  jitter_seconds: float = 1.0

  def __post_init__(self) -> None:
    if self.max_retries < 0:
      raise ValueError("max_retries must be zero or a positive integer.")
    if self.jitter_seconds > self.base_seconds:
      raise ValueError("jitter_seconds must not exceed base_seconds.")

  @property
  def max_attempts(self) -> int:
    return self.max_retries + 1

  def delay_for(self, retry_index: int, rng: random.Random | None = None) -> float:
    jitter = (rng or random).uniform(0, self.jitter_seconds) if self.jitter_seconds else 0.0
    return self.base_seconds * (2**retry_index) + jitter


async def retry_with_backoff(
  func: Callable[..., Awaitable[T]],
  *args: Any,
  policy: BackoffPolicy,
  should_retry: Callable[[BaseException], bool],
  on_retry: RetryHook | None = None,
  sleep: Sleep = asyncio.sleep,
  rng: random.Random | None = None,
  **kwargs: Any,
) -> T:
  """Call `func` until it succeeds, a non-retryable error occurs, or attempts run out.

  Non-retryable errors propagate unchanged. Exhausting the attempt budget
  raises `RetriesExhaustedError` chained to the last failure.
  """
  retry_index = 0
  while True:
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not should_retry(exc):
        raise
      attempts = retry_index + 1
      if retry_index >= policy.max_retries:
        logger.error("Giving up after %s attempts: %s", attempts, exc)
        raise RetriesExhaustedError(attempts, exc) from exc

      delay = policy.delay_for(retry_index, rng)
      logger.warning("Retry attempt %s/%s needed. Error: %s. Retrying in %.2fs...", attempts, policy.max_retries, exc, delay)
      if on_retry is not None:
        await on_retry(attempts, delay, exc)
      await sleep(delay)
      retry_index += 1
