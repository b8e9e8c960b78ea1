"""Sentence-respecting script chunking."""

from __future__ import annotations

import re

# A boundary is whitespace that follows sentence-terminal punctuation.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
  """Split text into sentences on terminal punctuation followed by whitespace."""
  return [sentence for sentence in _SENTENCE_BOUNDARY.split(text.strip()) if sentence]


def chunk_script(script: str, max_chars: int) -> list[str]:
  """Greedily pack sentences into segments of at most `max_chars` characters.

  Sentences are joined with a single space. A sentence longer than `max_chars`
  is emitted as its own oversized segment rather than being cut.
  """
  if max_chars <= 0:
    raise ValueError("max_chars must be a positive integer.")

  trimmed = script.strip()
  if not trimmed:
    return []
  if len(trimmed) <= max_chars:
    return [trimmed]

  chunks: list[str] = []
  current = ""
  for sentence in split_sentences(trimmed):
    if not current:
      current = sentence
      continue
    candidate = f"{current} {sentence}"
    if len(candidate) > max_chars:
      chunks.append(current)
      current = sentence
    else:
      current = candidate

  if current:
    chunks.append(current)
  return chunks
