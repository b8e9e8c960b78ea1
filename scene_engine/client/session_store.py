"""Resumable client-side job identity, keyed by project."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Protocol

import msgspec

logger = logging.getLogger(__name__)


class ClientJobSession(msgspec.Struct):
  """Last known identity and status of an in-flight job."""

  project_id: str
  job_id: str
  status: str
  saved_at: float = 0.0


class SessionStore(Protocol):
  def load(self, project_id: str) -> ClientJobSession | None: ...

  def save(self, session: ClientJobSession) -> None: ...

  def clear(self, project_id: str) -> None: ...


class MemorySessionStore(SessionStore):
  def __init__(self) -> None:
    self._sessions: dict[str, ClientJobSession] = {}

  def load(self, project_id: str) -> ClientJobSession | None:
    return self._sessions.get(project_id)

  def save(self, session: ClientJobSession) -> None:
    self._sessions[session.project_id] = msgspec.structs.replace(session, saved_at=time.time())

  def clear(self, project_id: str) -> None:
    self._sessions.pop(project_id, None)


class FileSessionStore(SessionStore):
  """Persist sessions as one JSON document so they survive process restarts."""

  def __init__(self, path: Path) -> None:
    self._path = path
    self._decoder = msgspec.json.Decoder(dict[str, ClientJobSession])

  def _read(self) -> dict[str, ClientJobSession]:
    if not self._path.is_file():
      return {}
    try:
      return self._decoder.decode(self._path.read_bytes())
    except msgspec.DecodeError:
      # The file only caches server truth; a corrupt copy is discarded.
      logger.warning("Discarding unreadable session file %s", self._path)
      return {}

  def _write(self, sessions: dict[str, ClientJobSession]) -> None:
    self._path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
    tmp_path.write_bytes(msgspec.json.encode(sessions))
    os.replace(tmp_path, self._path)

  def load(self, project_id: str) -> ClientJobSession | None:
    return self._read().get(project_id)

  def save(self, session: ClientJobSession) -> None:
    sessions = self._read()
    sessions[session.project_id] = msgspec.structs.replace(session, saved_at=time.time())
    self._write(sessions)

  def clear(self, project_id: str) -> None:
    sessions = self._read()
    if sessions.pop(project_id, None) is not None:
      self._write(sessions)
