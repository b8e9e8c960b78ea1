from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from scene_engine.core.database import Base


class Project(Base):
  __tablename__ = "projects"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  language: Mapped[str | None] = mapped_column(String, nullable=True)
  story_type: Mapped[str | None] = mapped_column(String, nullable=True)
  tone: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class GenerationJob(Base):
  __tablename__ = "generation_jobs"
  __table_args__ = (
    # At most one non-terminal job per user; admission relies on this to stay race-free.
    Index("ux_generation_jobs_user_active", "user_id", unique=True, postgresql_where=text("status IN ('queued', 'processing')")),
    Index("ix_generation_jobs_user_status_updated", "user_id", "status", "updated_at"),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  script_content: Mapped[str] = mapped_column(Text, nullable=False)
  script_hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
  language: Mapped[str] = mapped_column(String, nullable=False)
  story_type: Mapped[str] = mapped_column(String, nullable=False)
  tone: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  scenes_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class SceneCacheEntry(Base):
  __tablename__ = "scene_cache"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  fingerprint: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
  language: Mapped[str] = mapped_column(String, nullable=False)
  story_type: Mapped[str] = mapped_column(String, nullable=False)
  tone: Mapped[str] = mapped_column(String, nullable=False)
  scenes_json: Mapped[list] = mapped_column(JSONB, nullable=False)
  hit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class Scene(Base):
  __tablename__ = "scenes"
  __table_args__ = (UniqueConstraint("job_id", "scene_order", name="ux_scenes_job_order"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  job_id: Mapped[str] = mapped_column(ForeignKey("generation_jobs.job_id", ondelete="CASCADE"), nullable=False, index=True)
  scene_order: Mapped[int] = mapped_column(Integer, nullable=False)
  title: Mapped[str] = mapped_column(String, nullable=False)
  narration_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
  visual_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  mood: Mapped[str] = mapped_column(String, nullable=False)
  estimated_duration: Mapped[int] = mapped_column(Integer, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SubmissionEvent(Base):
  __tablename__ = "submission_events"
  __table_args__ = (Index("ix_submission_events_user_created", "user_id", "created_at"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
