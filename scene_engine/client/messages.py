"""Plain-language messages shown to end users."""

from __future__ import annotations

from typing import Literal

ErrorCategory = Literal["validation", "auth", "not_found", "rate_limited", "service_unavailable", "network", "timeout", "unknown"]

TIMEOUT_MESSAGE = "Job timed out. Please try again."

MESSAGES: dict[str, str] = {
  "validation": "Please check your script and try again.",
  "auth": "Your session has expired. Please sign in again.",
  "not_found": "We couldn't find that project or job.",
  "rate_limited": "You're generating too quickly. Please wait a minute and try again.",
  "service_unavailable": "The scene service is temporarily unavailable. Please try again shortly.",
  "network": "We couldn't reach the server. Check your connection and try again.",
  "timeout": TIMEOUT_MESSAGE,
  "unknown": "Something went wrong. Please try again.",
}


def category_for_status(status_code: int) -> ErrorCategory:
  if status_code in {400, 422}:
    return "validation"
  if status_code in {401, 403}:
    return "auth"
  if status_code == 404:
    return "not_found"
  if status_code == 429:
    return "rate_limited"
  if status_code >= 500:
    return "service_unavailable"
  return "unknown"


def message_for(category: ErrorCategory) -> str:
  return MESSAGES.get(category, MESSAGES["unknown"])
