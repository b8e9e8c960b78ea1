"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from scene_engine.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_LLM_PROVIDERS = {"gemini", "dummy"}
_TASK_PROVIDERS = {"in-process", "local-http"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the scene generation service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  llm_provider: str
  gemini_model: str
  gemini_api_key: str | None
  task_service_provider: str
  base_url: str | None
  task_secret: str | None
  script_min_chars: int
  script_max_chars: int
  chunk_max_chars: int
  inter_chunk_delay_seconds: float
  llm_max_retries: int
  llm_backoff_base_seconds: float
  llm_backoff_jitter_seconds: float
  rate_limit_max_requests: int
  rate_limit_window_seconds: int
  cache_ttl_seconds: int
  stale_job_seconds: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("SCENES_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SCENES_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("SCENES_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  stripped = raw.strip()
  return stripped or None


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value


def _pg_dsn() -> str | None:
  return _optional_str(os.getenv("SCENES_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SCENES_ENV", "development").lower()

  # Toggle verbose error output and SQL echo in non-production environments.
  debug = _parse_bool(os.getenv("SCENES_DEBUG"))

  log_dir = (os.getenv("SCENES_LOG_DIR") or "./logs").strip()
  log_max_bytes = _positive_int("SCENES_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("SCENES_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SCENES_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("SCENES_LOG_HTTP_4XX"))

  llm_provider = (os.getenv("SCENES_LLM_PROVIDER") or "gemini").strip().lower()
  if llm_provider not in _LLM_PROVIDERS:
    raise ValueError(f"SCENES_LLM_PROVIDER must be one of {sorted(_LLM_PROVIDERS)}.")

  task_service_provider = (os.getenv("SCENES_TASK_SERVICE_PROVIDER") or "in-process").strip().lower()
  if task_service_provider not in _TASK_PROVIDERS:
    raise ValueError(f"SCENES_TASK_SERVICE_PROVIDER must be one of {sorted(_TASK_PROVIDERS)}.")

  script_min_chars = _positive_int("SCENES_SCRIPT_MIN_CHARS", "50")
  script_max_chars = _positive_int("SCENES_SCRIPT_MAX_CHARS", "50000")
  if script_min_chars > script_max_chars:
    raise ValueError("SCENES_SCRIPT_MIN_CHARS must not exceed SCENES_SCRIPT_MAX_CHARS.")

  llm_max_retries = int(os.getenv("SCENES_LLM_MAX_RETRIES", "3"))
  if llm_max_retries < 0:
    raise ValueError("SCENES_LLM_MAX_RETRIES must be zero or a positive integer.")

  # Jitter above the base would let a later attempt wait less than an earlier one.
  backoff_base = _non_negative_float("SCENES_LLM_BACKOFF_BASE_SECONDS", "2.0")
  backoff_jitter = _non_negative_float("SCENES_LLM_BACKOFF_JITTER_SECONDS", "1.0")
  if backoff_jitter > backoff_base:
    raise ValueError("SCENES_LLM_BACKOFF_JITTER_SECONDS must not exceed SCENES_LLM_BACKOFF_BASE_SECONDS.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("SCENES_ALLOWED_ORIGINS")),
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=_pg_dsn(),
    pg_connect_timeout=_positive_int("SCENES_PG_CONNECT_TIMEOUT", "10"),
    llm_provider=llm_provider,
    gemini_model=(os.getenv("SCENES_GEMINI_MODEL") or "gemini-2.0-flash").strip(),
    gemini_api_key=_optional_str(os.getenv("SCENES_GEMINI_API_KEY")) or _optional_str(os.getenv("GEMINI_API_KEY")),
    task_service_provider=task_service_provider,
    base_url=_optional_str(os.getenv("SCENES_BASE_URL")),
    task_secret=_optional_str(os.getenv("SCENES_TASK_SECRET")),
    script_min_chars=script_min_chars,
    script_max_chars=script_max_chars,
    chunk_max_chars=_positive_int("SCENES_CHUNK_MAX_CHARS", "4000"),
    inter_chunk_delay_seconds=_non_negative_float("SCENES_INTER_CHUNK_DELAY_SECONDS", "1.5"),
    llm_max_retries=llm_max_retries,
    llm_backoff_base_seconds=backoff_base,
    llm_backoff_jitter_seconds=backoff_jitter,
    rate_limit_max_requests=_positive_int("SCENES_RATE_LIMIT_MAX_REQUESTS", "5"),
    rate_limit_window_seconds=_positive_int("SCENES_RATE_LIMIT_WINDOW_SECONDS", "60"),
    cache_ttl_seconds=_positive_int("SCENES_CACHE_TTL_SECONDS", str(30 * 24 * 60 * 60)),
    stale_job_seconds=_positive_int("SCENES_STALE_JOB_SECONDS", "900"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the web configuration."""

  return DatabaseSettings(debug=_parse_bool(os.getenv("SCENES_DEBUG")), pg_dsn=_pg_dsn(), pg_connect_timeout=_positive_int("SCENES_PG_CONNECT_TIMEOUT", "10"))
