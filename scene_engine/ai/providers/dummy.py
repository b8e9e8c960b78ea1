"""Deterministic offline provider for local development."""

from __future__ import annotations

import json

from scene_engine.ai.prompts import SCRIPT_CLOSE, SCRIPT_OPEN
from scene_engine.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse
from scene_engine.jobs.chunker import split_sentences

_SENTENCES_PER_SCENE = 2


def _script_from_prompt(prompt: str) -> str:
  _, _, tail = prompt.partition(SCRIPT_OPEN)
  body, _, _ = tail.partition(SCRIPT_CLOSE)
  return body.strip()


class DummyModel(AIModel):
  """Emit one scene per pair of sentences without calling any service."""

  def __init__(self) -> None:
    self.name = "dummy"

  async def generate(self, prompt: str) -> ModelResponse:
    sentences = split_sentences(_script_from_prompt(prompt))
    scenes = []
    for start in range(0, len(sentences), _SENTENCES_PER_SCENE):
      narration = " ".join(sentences[start : start + _SENTENCES_PER_SCENE])
      title = " ".join(narration.split()[:4]).rstrip(".!?,")
      scenes.append({"title": title, "narration_text": narration, "visual_description": f"Illustration of: {narration[:120]}", "mood": "calm", "estimated_duration": max(5, min(15, len(narration.split()) // 2))})
    return SimpleModelResponse(content=json.dumps(scenes, ensure_ascii=False))


class DummyProvider(Provider):
  def __init__(self) -> None:
    self.name = "dummy"

  def get_model(self, model: str | None = None) -> AIModel:
    return DummyModel()
