import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from scene_engine.api.deps import get_admission_controller, get_job_status_service
from scene_engine.api.models import JobConflictResponse, JobStatusResponse, SubmitJobRequest, SubmitJobResponse
from scene_engine.core.security import get_current_user_id
from scene_engine.services.admission import AdmissionController
from scene_engine.services.job_status import JobStatusService

router = APIRouter()
logger = logging.getLogger("scene_engine.api.routes.jobs")


@router.post("", response_model=SubmitJobResponse, responses={status.HTTP_409_CONFLICT: {"model": JobConflictResponse}})
async def submit_job(  # noqa: B008
  request: SubmitJobRequest,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  admission: AdmissionController = Depends(get_admission_controller),  # noqa: B008
) -> SubmitJobResponse | JSONResponse:
  """Submit a script for scene generation."""
  result = await admission.submit(user_id=user_id, project_id=request.project_id, script=request.script, language=request.language, story_type=request.story_type, tone=request.tone)
  if result.conflict:
    # A typed 409 tells the client which job to follow instead.
    conflict = JobConflictResponse(job_id=result.job.job_id, status=result.job.status)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=conflict.model_dump(mode="json", by_alias=True))

  return SubmitJobResponse(job_id=result.job.job_id, status=result.job.status, cached=result.cached, scenes=result.scenes if result.cached else None)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  status_service: JobStatusService = Depends(get_job_status_service),  # noqa: B008
) -> JobStatusResponse:
  """Return progress for a job; scenes are included once it completes."""
  view = await status_service.get_status(job_id, user_id=user_id)
  if view is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

  return JobStatusResponse(
    job_id=view.job_id,
    status=view.status,
    progress=view.progress,
    scenes_generated=view.scenes_generated,
    failure_reason=view.failure_reason,
    scenes=view.scenes,
    created_at=view.created_at,
    started_at=view.started_at,
    completed_at=view.completed_at,
  )
