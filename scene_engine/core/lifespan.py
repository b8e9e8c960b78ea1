import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from scene_engine.core.database import dispose_engine
from scene_engine.core.logging import initialize_logging
from scene_engine.services.tasks.factory import get_in_process_enqueuer


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging on startup; stop in-process workers and the pool on shutdown."""
  from scene_engine.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("scene_engine.core.lifespan")
  initialize_logging(settings)
  logger.info("Startup complete env=%s llm_provider=%s model=%s dispatch=%s db=%s", settings.environment, settings.llm_provider, settings.gemini_model, settings.task_service_provider, _redact_dsn(settings.pg_dsn))

  try:
    yield
  finally:
    # Cancelled workers still record a terminal status on their jobs.
    enqueuer = get_in_process_enqueuer()
    if enqueuer is not None:
      await enqueuer.shutdown()
    await dispose_engine()
    logger.info("Shutdown complete")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{parsed.username}@{host}{port}" if parsed.username else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
