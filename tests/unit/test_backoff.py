from __future__ import annotations

import random

import pytest

from scene_engine.ai.backoff import BackoffPolicy, RetriesExhaustedError, retry_with_backoff
from scene_engine.ai.errors import ProviderHTTPError, is_retryable
from tests.fakes import RecordingSleep


def test_delays_never_decrease_when_jitter_is_bounded_by_base() -> None:
  policy = BackoffPolicy(max_retries=5, base_seconds=2.0, jitter_seconds=1.0)
  rng = random.Random(7)
  for _ in range(200):
    delays = [policy.delay_for(index, rng) for index in range(policy.max_retries)]
    assert delays == sorted(delays)
    assert 2.0 <= delays[0] <= 3.0


def test_policy_rejects_jitter_above_base() -> None:
  with pytest.raises(ValueError):
    BackoffPolicy(base_seconds=1.0, jitter_seconds=2.0)


@pytest.mark.anyio
async def test_retry_with_backoff_stops_after_max_attempts() -> None:
  sleep = RecordingSleep()
  calls = 0

  async def always_busy() -> str:
    nonlocal calls
    calls += 1
    raise ProviderHTTPError(503)

  with pytest.raises(RetriesExhaustedError) as excinfo:
    await retry_with_backoff(always_busy, policy=BackoffPolicy(max_retries=3, base_seconds=1.0, jitter_seconds=0.0), should_retry=is_retryable, sleep=sleep)

  assert calls == 4
  assert excinfo.value.attempts == 4
  assert sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.anyio
async def test_retry_with_backoff_propagates_non_retryable_errors_immediately() -> None:
  sleep = RecordingSleep()
  calls = 0

  async def bad_request() -> str:
    nonlocal calls
    calls += 1
    raise ProviderHTTPError(400)

  with pytest.raises(ProviderHTTPError):
    await retry_with_backoff(bad_request, policy=BackoffPolicy(), should_retry=is_retryable, sleep=sleep)

  assert calls == 1
  assert sleep.delays == []


@pytest.mark.anyio
async def test_retry_hook_sees_each_retry() -> None:
  seen: list[int] = []
  outcomes: list[Exception | str] = [ProviderHTTPError(429), ProviderHTTPError(500), "ok"]

  async def flaky() -> str:
    item = outcomes.pop(0)
    if isinstance(item, Exception):
      raise item
    return item

  async def on_retry(attempt: int, delay: float, exc: BaseException) -> None:
    seen.append(attempt)

  result = await retry_with_backoff(flaky, policy=BackoffPolicy(base_seconds=0.5, jitter_seconds=0.0), should_retry=is_retryable, on_retry=on_retry, sleep=RecordingSleep())
  assert result == "ok"
  assert seen == [1, 2]
