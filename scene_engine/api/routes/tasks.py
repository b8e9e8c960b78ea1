from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, status
from pydantic import BaseModel

from scene_engine.config import Settings, get_settings
from scene_engine.jobs.models import WorkerPayload
from scene_engine.services.jobs import process_job

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
  job_id: str
  project_id: str
  script: str
  language: str
  story_type: str
  tone: str
  fingerprint: str


@router.post("/process-job", status_code=status.HTTP_200_OK)
async def process_job_task(
  payload: TaskPayload, background_tasks: BackgroundTasks, settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_scenes_task_secret: str | None = Header(default=None)
) -> dict[str, str]:
  """Accept a worker trigger and run the job after the response is sent."""
  # Secure-by-default: internal task endpoints must be authenticated to avoid arbitrary job execution.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  shared_secret_valid = secrets.compare_digest((x_scenes_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to /process-job")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")

  logger.info("Received task for job %s", payload.job_id)
  background_tasks.add_task(process_job, WorkerPayload(**payload.model_dump()), settings)
  return {"status": "accepted"}
