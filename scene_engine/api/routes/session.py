from fastapi import APIRouter, Depends

from scene_engine.api.models import SessionResponse
from scene_engine.core.security import get_current_user_id

router = APIRouter()


@router.get("", response_model=SessionResponse)
async def get_session(user_id: str = Depends(get_current_user_id)) -> SessionResponse:  # noqa: B008
  """Confirm the caller's session is still valid."""
  return SessionResponse(user_id=user_id)
