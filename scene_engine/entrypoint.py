"""Container entrypoint: apply migrations, then hand the process to uvicorn."""

import logging
import os
import subprocess
import sys
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def main() -> None:
  logger.info("Running database migrations...")
  try:
    subprocess.run([sys.executable, "-m", "alembic", "upgrade", "head"], check=True, cwd=PROJECT_ROOT)
  except subprocess.CalledProcessError as e:
    logger.error("Migration failed with exit code %s", e.returncode)
    sys.exit(e.returncode)

  port = os.getenv("PORT", "8080")
  logger.info("Starting application on port %s...", port)
  # Replace this process so uvicorn receives SIGTERM directly.
  os.execvp("uvicorn", ["uvicorn", "scene_engine.main:app", "--host", "0.0.0.0", "--port", port])


if __name__ == "__main__":
  main()
