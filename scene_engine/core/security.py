"""Caller identity forwarded by the authenticating gateway."""

from __future__ import annotations

import logging

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
  """Return the authenticated caller id or reject the request."""
  user_id = (x_user_id or "").strip()
  if not user_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
  return user_id
