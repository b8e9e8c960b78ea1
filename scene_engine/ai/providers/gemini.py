"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import asyncio
import logging
from typing import Final

import httpx
from google import genai
from google.genai import errors as genai_errors

from scene_engine.ai.errors import ProviderHTTPError, ProviderNetworkError
from scene_engine.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


class GeminiModel(AIModel):
  """Gemini model client that maps SDK failures onto provider errors."""

  def __init__(self, name: str, api_key: str | None) -> None:
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self.name = name
    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str) -> ModelResponse:
    """Generate text response from Gemini."""
    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config={"response_mime_type": "application/json"})
    except genai_errors.APIError as exc:
      raise ProviderHTTPError(exc.code or 500, f"AI service error: {exc.code}") from exc
    except (httpx.TransportError, asyncio.TimeoutError) as exc:
      raise ProviderNetworkError(f"AI service unreachable: {type(exc).__name__}") from exc

    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count, "completion_tokens": response.usage_metadata.candidates_token_count, "total_tokens": response.usage_metadata.total_token_count}
    logger.debug("Gemini response model=%s usage=%s", self.name, usage)
    return SimpleModelResponse(content=response.text or "", usage=usage)


class GeminiProvider(Provider):
  _DEFAULT_MODEL: Final[str] = "gemini-2.0-flash"

  def __init__(self, api_key: str | None) -> None:
    self.name = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    return GeminiModel(model or self._DEFAULT_MODEL, api_key=self._api_key)
