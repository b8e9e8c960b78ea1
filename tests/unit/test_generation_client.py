from __future__ import annotations

import pytest

from scene_engine.ai.backoff import BackoffPolicy
from scene_engine.ai.client import TextGenerationClient
from scene_engine.ai.errors import EmptyResponseError, ProviderHTTPError, ProviderNetworkError, ProviderRequestError, ServiceUnavailableError
from tests.fakes import RecordingSleep, ScriptedModel, rate_limited


def _client(model: ScriptedModel, sleep: RecordingSleep, *, max_retries: int = 3) -> TextGenerationClient:
  return TextGenerationClient(model, policy=BackoffPolicy(max_retries=max_retries, base_seconds=2.0, jitter_seconds=0.0), sleep=sleep)


@pytest.mark.anyio
async def test_rate_limits_are_retried_with_backoff() -> None:
  sleep = RecordingSleep()
  model = ScriptedModel(responses=[rate_limited(), rate_limited(), '[{"title": "One"}]'])

  content = await _client(model, sleep).generate("prompt")

  assert content == '[{"title": "One"}]'
  assert model.calls == 3
  assert sleep.delays == [2.0, 4.0]


@pytest.mark.anyio
async def test_network_errors_are_retried() -> None:
  model = ScriptedModel(responses=[ProviderNetworkError("connection reset"), "[]"])
  assert await _client(model, RecordingSleep()).generate("prompt") == "[]"
  assert model.calls == 2


@pytest.mark.anyio
async def test_client_errors_fail_without_retrying() -> None:
  sleep = RecordingSleep()
  model = ScriptedModel(responses=[ProviderHTTPError(400)])

  with pytest.raises(ProviderRequestError, match="AI service error: 400"):
    await _client(model, sleep).generate("prompt")

  assert model.calls == 1
  assert sleep.delays == []


@pytest.mark.anyio
async def test_exhausted_rate_limits_raise_service_unavailable() -> None:
  model = ScriptedModel(default=None, responses=[rate_limited() for _ in range(4)])

  with pytest.raises(ServiceUnavailableError) as excinfo:
    await _client(model, RecordingSleep()).generate("prompt")

  assert model.calls == 4
  assert excinfo.value.attempts == 4
  assert excinfo.value.last_status == 429
  assert "rate limit exceeded after 4 attempts" in str(excinfo.value)


@pytest.mark.anyio
async def test_exhausted_server_errors_report_unavailable() -> None:
  model = ScriptedModel(responses=[ProviderHTTPError(503), ProviderHTTPError(503)])

  with pytest.raises(ServiceUnavailableError, match="AI service unavailable after 2 attempts"):
    await _client(model, RecordingSleep(), max_retries=1).generate("prompt")


@pytest.mark.anyio
async def test_blank_response_is_an_empty_response_error() -> None:
  model = ScriptedModel(responses=["   "])
  with pytest.raises(EmptyResponseError, match="No content in AI response"):
    await _client(model, RecordingSleep()).generate("prompt")
