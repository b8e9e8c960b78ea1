"""Turn raw model output into validated scene drafts."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from scene_engine.ai.errors import SceneParseError
from scene_engine.ai.json_parser import extract_balanced_block, loads_lenient, strip_json_fences
from scene_engine.schema.scenes import SceneDraft

logger = logging.getLogger(__name__)


def _scene_list(payload: Any) -> list[Any] | None:
  """Accept a bare array or an object wrapping the array under `scenes`."""
  if isinstance(payload, list):
    return payload
  if isinstance(payload, dict) and isinstance(payload.get("scenes"), list):
    return payload["scenes"]
  return None


def _locate_scene_list(text: str) -> list[Any]:
  try:
    scenes = _scene_list(loads_lenient(text))
  except json.JSONDecodeError:
    scenes = None
  if scenes is not None:
    return scenes

  # Fall back to the first balanced array embedded in surrounding prose.
  candidate = extract_balanced_block(text, "[")
  if candidate is not None:
    try:
      scenes = _scene_list(loads_lenient(candidate))
    except json.JSONDecodeError:
      scenes = None
  if scenes is None:
    logger.warning("Unparseable AI response (%d chars): %.200s", len(text), text)
    raise SceneParseError("Failed to parse AI response")
  return scenes


def parse_scenes(raw: str, *, start_order: int = 1) -> list[SceneDraft]:
  """Parse a model response into ordered scene drafts.

  `start_order` is the order number the first scene will receive, used for
  default titles.
  """
  scenes = _locate_scene_list(strip_json_fences(raw))
  drafts: list[SceneDraft] = []
  for offset, item in enumerate(scenes):
    order = start_order + offset
    if not isinstance(item, dict):
      raise SceneParseError(f"Failed to parse AI response: scene {order} is not an object")
    fields = dict(item)
    title = fields.get("title")
    if not isinstance(title, str) or not title.strip():
      fields["title"] = f"Scene {order}"
    else:
      fields["title"] = title.strip()
    try:
      drafts.append(SceneDraft.model_validate(fields))
    except ValidationError as exc:
      raise SceneParseError(f"Failed to parse AI response: scene {order} is invalid") from exc
  return drafts
