from __future__ import annotations

import json

import httpx
import pytest

from scene_engine.client.api import ApiError, ScenesApiClient


def _client(handler) -> ScenesApiClient:
  http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")
  return ScenesApiClient("http://test", headers={"x-user-id": "user-1"}, http_client=http)


@pytest.mark.anyio
async def test_submit_sends_camel_case_body() -> None:
  seen: dict = {}

  def handler(request: httpx.Request) -> httpx.Response:
    seen["body"] = json.loads(request.read())
    seen["user"] = request.headers["x-user-id"]
    return httpx.Response(200, json={"jobId": "j1", "status": "queued", "cached": False, "scenes": None})

  outcome = await _client(handler).submit_job(project_id="p1", script="Once upon a time.", story_type="moral")

  assert outcome.job_id == "j1"
  assert not outcome.conflict
  assert seen["body"] == {"projectId": "p1", "script": "Once upon a time.", "storyType": "moral"}
  assert seen["user"] == "user-1"


@pytest.mark.anyio
async def test_conflict_is_an_outcome_not_an_error() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(409, json={"jobId": "existing", "status": "processing", "conflict": True})

  outcome = await _client(handler).submit_job(project_id="p1", script="Once upon a time.")

  assert outcome.conflict
  assert outcome.job_id == "existing"
  assert outcome.status == "processing"


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("status_code", "category"),
  [(401, "auth"), (404, "not_found"), (429, "rate_limited"), (503, "service_unavailable"), (418, "unknown")],
)
async def test_error_statuses_map_to_categories(status_code, category) -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(status_code, json={"detail": "internal detail"})

  with pytest.raises(ApiError) as excinfo:
    await _client(handler).get_job_status("j1")

  assert excinfo.value.category == category
  assert "internal detail" not in excinfo.value.message


@pytest.mark.anyio
async def test_validation_errors_keep_server_message() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(400, json={"detail": "Script must be at least 50 characters"})

  with pytest.raises(ApiError) as excinfo:
    await _client(handler).submit_job(project_id="p1", script="short")

  assert excinfo.value.message == "Script must be at least 50 characters"


@pytest.mark.anyio
async def test_network_failure_is_categorized() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused")

  with pytest.raises(ApiError) as excinfo:
    await _client(handler).get_job_status("j1")

  assert excinfo.value.category == "network"


@pytest.mark.anyio
async def test_malformed_status_payload_is_rejected() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"jobId": "j1", "status": "exploded", "progress": 500, "scenesGenerated": 0})

  with pytest.raises(ApiError) as excinfo:
    await _client(handler).get_job_status("j1")

  assert excinfo.value.category == "unknown"


@pytest.mark.anyio
async def test_verify_session() -> None:
  statuses = iter([200, 401])

  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(next(statuses), json={"userId": "user-1"})

  client = _client(handler)
  assert await client.verify_session() is True
  assert await client.verify_session() is False
