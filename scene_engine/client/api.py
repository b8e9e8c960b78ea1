"""HTTP client for the scene generation API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from scene_engine.api.models import JobConflictResponse, JobStatusResponse, SubmitJobResponse
from scene_engine.client.messages import ErrorCategory, category_for_status, message_for
from scene_engine.jobs.models import JobStatus
from scene_engine.schema.scenes import SceneDraft

logger = logging.getLogger(__name__)


class ApiError(Exception):
  """A request failed; `message` is safe to show to users."""

  def __init__(self, category: ErrorCategory, *, status_code: int | None = None, message: str | None = None) -> None:
    self.category = category
    self.status_code = status_code
    self.message = message or message_for(category)
    super().__init__(f"{category} (status={status_code}): {self.message}")


@dataclass(frozen=True)
class SubmitOutcome:
  job_id: str
  status: JobStatus
  cached: bool = False
  conflict: bool = False
  scenes: list[SceneDraft] = field(default_factory=list)


class ScenesApiClient:
  """Async client for submit, status and session endpoints."""

  def __init__(self, base_url: str, *, headers: Mapping[str, str] | None = None, timeout: float = 15.0, http_client: httpx.AsyncClient | None = None) -> None:
    self._owns_client = http_client is None
    self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
    self._headers = dict(headers or {})

  async def __aenter__(self) -> ScenesApiClient:
    return self

  async def __aexit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    if self._owns_client:
      await self._http.aclose()

  async def submit_job(self, *, project_id: str, script: str, language: str | None = None, story_type: str | None = None, tone: str | None = None) -> SubmitOutcome:
    body = {"projectId": project_id, "script": script, "language": language, "storyType": story_type, "tone": tone}
    response = await self._request("POST", "/v1/jobs", json={key: value for key, value in body.items() if value is not None})

    # An existing active job is a redirect, not a failure.
    if response.status_code == httpx.codes.CONFLICT:
      conflict = self._parse(response, JobConflictResponse)
      return SubmitOutcome(job_id=conflict.job_id, status=conflict.status, conflict=True)

    self._raise_for_status(response)
    accepted = self._parse(response, SubmitJobResponse)
    return SubmitOutcome(job_id=accepted.job_id, status=accepted.status, cached=accepted.cached, scenes=list(accepted.scenes or []))

  async def get_job_status(self, job_id: str) -> JobStatusResponse:
    response = await self._request("GET", f"/v1/jobs/{job_id}")
    self._raise_for_status(response)
    return self._parse(response, JobStatusResponse)

  async def verify_session(self) -> bool:
    """Return False when the server no longer accepts the caller's credentials."""
    response = await self._request("GET", "/v1/session")
    if response.status_code in {httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN}:
      return False
    self._raise_for_status(response)
    return True

  async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
      return await self._http.request(method, url, headers=self._headers, **kwargs)
    except httpx.RequestError as exc:
      logger.warning("%s %s failed: %s", method, url, exc)
      raise ApiError("network") from exc

  @staticmethod
  def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
      return
    category = category_for_status(response.status_code)
    message = None
    # Validation details are written for end users; everything else uses canned text.
    if category == "validation":
      detail = _json_or_none(response)
      if isinstance(detail, dict) and isinstance(detail.get("detail"), str):
        message = detail["detail"]
    raise ApiError(category, status_code=response.status_code, message=message)

  @staticmethod
  def _parse[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
    try:
      return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
      logger.warning("Malformed %s from %s: %s", model.__name__, response.url, exc)
      raise ApiError("unknown", status_code=response.status_code) from exc


def _json_or_none(response: httpx.Response) -> Any:
  try:
    return response.json()
  except ValueError:
    return None
