"""Content fingerprints for cache lookups."""

from __future__ import annotations

import hashlib

_SEPARATOR = "|"


def normalize_script(script: str) -> str:
  """Trim, lowercase and collapse internal whitespace runs to one space."""
  return " ".join(script.lower().split())


def fingerprint(script: str, language: str, story_type: str, tone: str) -> str:
  """Return the SHA-256 hex digest of the normalized input.

  The categorical fields never contain the separator, so the encoding stays
  unambiguous even when the script does.
  """
  parts = [normalize_script(script), language.strip().lower(), story_type.strip().lower(), tone.strip().lower()]
  return hashlib.sha256(_SEPARATOR.join(parts).encode("utf-8")).hexdigest()
