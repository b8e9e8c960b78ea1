"""Retrying text-generation client used by the scene worker."""

from __future__ import annotations

import asyncio
import logging
import random

from scene_engine.ai.backoff import BackoffPolicy, RetriesExhaustedError, RetryHook, Sleep, retry_with_backoff
from scene_engine.ai.errors import EmptyResponseError, ProviderHTTPError, ProviderRequestError, ServiceUnavailableError, is_retryable
from scene_engine.ai.providers.base import AIModel
from scene_engine.ai.providers.dummy import DummyProvider
from scene_engine.ai.providers.gemini import GeminiProvider
from scene_engine.config import Settings

logger = logging.getLogger(__name__)


class TextGenerationClient:
  """`generate(prompt) -> text` with retries for rate limits, 5xx and network errors.

  Other 4xx responses fail immediately with `ProviderRequestError`. Running out
  of attempts raises `ServiceUnavailableError`.
  """

  def __init__(self, model: AIModel, *, policy: BackoffPolicy, sleep: Sleep = asyncio.sleep, rng: random.Random | None = None) -> None:
    self._model = model
    self._policy = policy
    self._sleep = sleep
    self._rng = rng

  @property
  def model_name(self) -> str:
    return self._model.name

  @property
  def max_retries(self) -> int:
    return self._policy.max_retries

  async def generate(self, prompt: str, *, on_retry: RetryHook | None = None) -> str:
    try:
      response = await retry_with_backoff(self._model.generate, prompt, policy=self._policy, should_retry=is_retryable, on_retry=on_retry, sleep=self._sleep, rng=self._rng)
    except RetriesExhaustedError as exc:
      last = exc.last_error
      last_status = last.status_code if isinstance(last, ProviderHTTPError) else None
      reason = "rate limit exceeded" if last_status == 429 else "unavailable"
      raise ServiceUnavailableError(f"AI service {reason} after {exc.attempts} attempts", attempts=exc.attempts, last_status=last_status) from last
    except ProviderHTTPError as exc:
      raise ProviderRequestError(f"AI service error: {exc.status_code}", status_code=exc.status_code) from exc

    content = response.content
    if not content or not content.strip():
      raise EmptyResponseError("No content in AI response")
    return content


def build_model(settings: Settings) -> AIModel:
  """Return the configured model."""
  if settings.llm_provider == "dummy":
    return DummyProvider().get_model()
  return GeminiProvider(settings.gemini_api_key).get_model(settings.gemini_model)


def build_generation_client(settings: Settings) -> TextGenerationClient:
  policy = BackoffPolicy(max_retries=settings.llm_max_retries, base_seconds=settings.llm_backoff_base_seconds, jitter_seconds=settings.llm_backoff_jitter_seconds)
  return TextGenerationClient(build_model(settings), policy=policy)
