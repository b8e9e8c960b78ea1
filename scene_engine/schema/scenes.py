"""Typed scene payloads and the closed vocabularies used by generation requests."""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, field_validator

Language = Literal["hindi", "hinglish", "english"]
StoryType = Literal["kids", "bedtime", "moral"]
Tone = Literal["calm", "emotional", "dramatic"]
Mood = Literal["happy", "sad", "mysterious", "exciting", "calm", "tense", "magical", "romantic"]

LANGUAGES: tuple[str, ...] = get_args(Language)
STORY_TYPES: tuple[str, ...] = get_args(StoryType)
TONES: tuple[str, ...] = get_args(Tone)
MOODS: tuple[str, ...] = get_args(Mood)

DEFAULT_LANGUAGE: Language = "hindi"
DEFAULT_STORY_TYPE: StoryType = "kids"
DEFAULT_TONE: Tone = "calm"
DEFAULT_MOOD: Mood = "calm"
DEFAULT_SCENE_SECONDS = 5
MAX_SCENE_SECONDS = 600


def _choice(raw: Any, allowed: tuple[str, ...], default: str) -> str:
  if isinstance(raw, str):
    normalized = raw.strip().lower()
    if normalized in allowed:
      return normalized
  return default


def normalize_language(raw: Any) -> Language:
  """Coerce a requested language onto the supported set."""
  return _choice(raw, LANGUAGES, DEFAULT_LANGUAGE)  # type: ignore[return-value]


def normalize_story_type(raw: Any) -> StoryType:
  """Coerce a requested story type onto the supported set."""
  return _choice(raw, STORY_TYPES, DEFAULT_STORY_TYPE)  # type: ignore[return-value]


def normalize_tone(raw: Any) -> Tone:
  """Coerce a requested tone onto the supported set."""
  return _choice(raw, TONES, DEFAULT_TONE)  # type: ignore[return-value]


class SceneDraft(BaseModel):
  """One generated scene before it is assigned to a project."""

  model_config = ConfigDict(extra="ignore")

  title: str
  narration_text: str = ""
  visual_description: str = ""
  mood: Mood = DEFAULT_MOOD
  estimated_duration: int = DEFAULT_SCENE_SECONDS

  @field_validator("narration_text", "visual_description", mode="before")
  @classmethod
  def _text_or_empty(cls, value: Any) -> str:
    if value is None:
      return ""
    return str(value).strip()

  @field_validator("mood", mode="before")
  @classmethod
  def _known_mood(cls, value: Any) -> str:
    # Models invent moods; anything outside the vocabulary falls back to calm.
    return _choice(value, MOODS, DEFAULT_MOOD)

  @field_validator("estimated_duration", mode="before")
  @classmethod
  def _positive_duration(cls, value: Any) -> int:
    try:
      seconds = round(float(value))
    except (TypeError, ValueError, OverflowError):
      return DEFAULT_SCENE_SECONDS
    # Out-of-range durations are model noise, not a reason to fail the job.
    return seconds if 0 < seconds <= MAX_SCENE_SECONDS else DEFAULT_SCENE_SECONDS
