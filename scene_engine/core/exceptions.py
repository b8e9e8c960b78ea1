import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scene_engine.services.errors import AdmissionError, ProjectAccessDeniedError, ProjectNotFoundError, RateLimitExceededError, SubmissionValidationError

logger = logging.getLogger("uvicorn.error")

_ADMISSION_STATUS: dict[type[AdmissionError], int] = {
  SubmissionValidationError: status.HTTP_400_BAD_REQUEST,
  ProjectNotFoundError: status.HTTP_404_NOT_FOUND,
  ProjectAccessDeniedError: status.HTTP_403_FORBIDDEN,
  RateLimitExceededError: status.HTTP_429_TOO_MANY_REQUESTS,
}


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    return f"{type(value).__name__}: {value}" if str(value) else type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  payload: dict[str, Any] = {"detail": detail}
  # Attach a request id so support can correlate client reports to server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: Any) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  from scene_engine.config import get_settings

  request_id = _request_id(request)
  # Log 5xx HTTPExceptions with a traceback for diagnostics; do not expose `exc.detail` to callers.
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))


async def admission_exception_handler(request: Request, exc: AdmissionError) -> JSONResponse:
  """Map admission rejections to client errors; none of them created a job."""
  request_id = _request_id(request)
  status_code = next((code for error_type, code in _ADMISSION_STATUS.items() if isinstance(exc, error_type)), status.HTTP_400_BAD_REQUEST)
  logger.info("Submission rejected request_id=%s status_code=%s reason=%s", request_id, status_code, exc.message)
  headers = {"Retry-After": str(exc.retry_after_seconds)} if isinstance(exc, RateLimitExceededError) else None
  return JSONResponse(status_code=status_code, content=_error_payload(exc.message, request_id=request_id), headers=headers)
