"""Admission failures resolved before any job is created."""

from __future__ import annotations


class AdmissionError(Exception):
  """Base class for submissions rejected by admission control."""

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class SubmissionValidationError(AdmissionError):
  """The submission is malformed (for example the script is too short)."""


class ProjectNotFoundError(AdmissionError):
  """The target project does not exist."""


class ProjectAccessDeniedError(AdmissionError):
  """The caller does not own the target project."""


class RateLimitExceededError(AdmissionError):
  """The caller exceeded the submission rate limit."""

  def __init__(self, message: str, *, retry_after_seconds: int) -> None:
    super().__init__(message)
    self.retry_after_seconds = retry_after_seconds
