"""Prompt construction for scene breakdown requests."""

from __future__ import annotations

from scene_engine.schema.scenes import MOODS

_LANGUAGE_GUIDANCE = {
  "hindi": "Write the narration_text in Hindi using Devanagari script.",
  "hinglish": "Write the narration_text in Hinglish: conversational Hindi written in Roman script, mixed naturally with English.",
  "english": "Write the narration_text in simple, clear English.",
}

_STORY_TYPE_GUIDANCE = {
  "kids": "The audience is young children. Keep vocabulary simple and the mood light and playful.",
  "bedtime": "This is a bedtime story. Keep the pacing slow and soothing, and end scenes gently.",
  "moral": "This is a moral story. Let the lesson emerge through the events and make it clear by the end.",
}

_TONE_GUIDANCE = {
  "calm": "Narrate in a calm, steady voice.",
  "emotional": "Narrate with warmth and emotional depth.",
  "dramatic": "Narrate with dramatic tension and vivid pacing.",
}

SCRIPT_OPEN = "<script>"
SCRIPT_CLOSE = "</script>"


def build_scene_prompt(chunk: str, *, index: int, total: int, language: str, story_type: str, tone: str) -> str:
  """Build the prompt for one chunk; `index` is 0-based."""
  part_line = f"This is part {index + 1} of {total} of a longer script. Continue naturally from earlier parts and do not summarize them." if total > 1 else "This is the complete script."
  moods = ", ".join(MOODS)
  return "\n".join(
    [
      "You are a storyboard writer turning a narration script into video scenes.",
      part_line,
      _LANGUAGE_GUIDANCE.get(language, _LANGUAGE_GUIDANCE["english"]),
      _STORY_TYPE_GUIDANCE.get(story_type, ""),
      _TONE_GUIDANCE.get(tone, ""),
      "",
      "Return ONLY a JSON array of scene objects, in story order, with exactly these fields:",
      '- "title": a short scene title',
      '- "narration_text": the narration spoken during the scene, taken from the script',
      '- "visual_description": what the viewer sees, written for an illustrator in English',
      f'- "mood": one of {moods}',
      '- "estimated_duration": narration length in whole seconds, between 5 and 15',
      "",
      "Rules:",
      "- Cover the script text completely and in order; do not invent new plot events.",
      "- Each scene should hold one or two sentences of narration.",
      "- Do not wrap the JSON in markdown or add commentary.",
      "",
      SCRIPT_OPEN,
      chunk,
      SCRIPT_CLOSE,
    ]
  )
