"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding markdown code fence, if present."""
  match = _FENCE_RE.match(raw)
  if match:
    return match.group(1).strip()
  return raw.strip()


def extract_balanced_block(raw: str, openers: str = "[") -> str | None:
  """Locate the first balanced block starting with one of `openers`.

  Brackets inside string literals are ignored so quoted narration cannot
  unbalance the scan.
  """
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in openers:
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None


def loads_lenient(candidate: str) -> Any:
  """Parse strictly, then once more with trailing commas removed."""
  try:
    return json.loads(candidate)
  except json.JSONDecodeError:
    # Trailing commas are the most common defect in model-written JSON.
    return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))
