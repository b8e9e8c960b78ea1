from __future__ import annotations

import pytest

from scene_engine.ai.errors import SceneParseError
from scene_engine.ai.scene_parser import parse_scenes


def test_parses_bare_array() -> None:
  drafts = parse_scenes('[{"title": "Dawn", "narration_text": "The sun rises.", "visual_description": "A village at dawn.", "mood": "happy", "estimated_duration": 7}]')
  assert len(drafts) == 1
  assert drafts[0].title == "Dawn"
  assert drafts[0].mood == "happy"
  assert drafts[0].estimated_duration == 7


def test_parses_fenced_object_with_scenes_key() -> None:
  raw = '```json\n{"scenes": [{"title": "One"}, {"title": "Two"}]}\n```'
  assert [draft.title for draft in parse_scenes(raw)] == ["One", "Two"]


def test_finds_array_embedded_in_prose() -> None:
  raw = 'Here are your scenes:\n[{"title": "Only [scene]", "narration_text": "Hi."},]\nEnjoy!'
  drafts = parse_scenes(raw)
  assert [draft.title for draft in drafts] == ["Only [scene]"]


def test_missing_fields_get_defaults() -> None:
  drafts = parse_scenes('[{"narration_text": "Quiet night.", "mood": "sleepy", "estimated_duration": -3}, {"title": "  "}]', start_order=4)
  assert drafts[0].title == "Scene 4"
  assert drafts[0].mood == "calm"
  assert drafts[0].estimated_duration == 5
  assert drafts[0].visual_description == ""
  assert drafts[1].title == "Scene 5"


@pytest.mark.parametrize("duration", ["1e999", "Infinity", "-Infinity", "NaN", "1e12", "601"])
def test_out_of_range_duration_falls_back_to_default(duration: str) -> None:
  drafts = parse_scenes(f'[{{"title": "Long", "estimated_duration": {duration}}}]')
  assert drafts[0].estimated_duration == 5


def test_unparseable_response_raises() -> None:
  with pytest.raises(SceneParseError, match="Failed to parse AI response"):
    parse_scenes("I could not think of any scenes, sorry.")


def test_object_without_scene_list_raises() -> None:
  with pytest.raises(SceneParseError):
    parse_scenes('{"title": "Not a list"}')


def test_non_object_scene_raises() -> None:
  with pytest.raises(SceneParseError):
    parse_scenes('["just a string"]')
