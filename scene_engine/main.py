from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from scene_engine import __version__
from scene_engine.api.routes import jobs, session, tasks
from scene_engine.config import get_settings
from scene_engine.core.exceptions import admission_exception_handler, global_exception_handler, http_exception_handler, request_validation_exception_handler
from scene_engine.core.lifespan import lifespan
from scene_engine.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from scene_engine.core.security import USER_ID_HEADER
from scene_engine.services.errors import AdmissionError

settings = get_settings()

app = FastAPI(title="scene-engine", version=__version__, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None)

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.allowed_origins,
  allow_credentials=True,
  allow_methods=["GET", "POST", "OPTIONS"],
  allow_headers=["content-type", "authorization", USER_ID_HEADER],
  expose_headers=["content-length", "retry-after", "x-request-id"],
)

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(AdmissionError, admission_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(jobs.router, prefix="/v1/jobs", tags=["jobs"])
app.include_router(session.router, prefix="/v1/session", tags=["session"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
