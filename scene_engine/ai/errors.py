"""Error types raised by the text-generation layer."""

from __future__ import annotations


class ProviderError(Exception):
  """Base class for failures talking to the text-generation service."""


class ProviderHTTPError(ProviderError):
  """The service answered with a non-success status."""

  def __init__(self, status_code: int, message: str = "") -> None:
    super().__init__(message or f"AI service returned HTTP {status_code}")
    self.status_code = status_code

  @property
  def is_rate_limit(self) -> bool:
    return self.status_code == 429

  @property
  def is_server_error(self) -> bool:
    return self.status_code >= 500


class ProviderNetworkError(ProviderError):
  """The request never produced a response (connection, DNS, timeout)."""


class ProviderRequestError(ProviderError):
  """The service rejected the request as malformed; retrying cannot help."""

  def __init__(self, message: str, *, status_code: int) -> None:
    super().__init__(message)
    self.status_code = status_code


class ServiceUnavailableError(ProviderError):
  """Retries were exhausted without a successful response."""

  def __init__(self, message: str, *, attempts: int, last_status: int | None = None) -> None:
    super().__init__(message)
    self.attempts = attempts
    self.last_status = last_status


class SceneParseError(Exception):
  """A response arrived but could not be turned into scenes."""


class EmptyResponseError(SceneParseError):
  """The service returned a success response with no text."""


def is_retryable(exc: BaseException) -> bool:
  """Rate limits, server errors and network failures are worth retrying."""
  if isinstance(exc, ProviderNetworkError):
    return True
  if isinstance(exc, ProviderHTTPError):
    return exc.is_rate_limit or exc.is_server_error
  return False
