"""Create scene generation tables.

Revision ID: 4f2a9c1d7e30
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "4f2a9c1d7e30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "projects",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("language", sa.String(), nullable=True),
    sa.Column("story_type", sa.String(), nullable=True),
    sa.Column("tone", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
  )
  op.create_index("ix_projects_user_id", "projects", ["user_id"])

  op.create_table(
    "generation_jobs",
    sa.Column("job_id", sa.String(), primary_key=True),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("script_content", sa.Text(), nullable=False),
    sa.Column("script_hash", sa.String(64), nullable=False),
    sa.Column("language", sa.String(), nullable=False),
    sa.Column("story_type", sa.String(), nullable=False),
    sa.Column("tone", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("scenes_generated", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("max_retries", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.CheckConstraint("status IN ('queued', 'processing', 'completed', 'failed')", name="ck_generation_jobs_status"),
    sa.CheckConstraint("progress BETWEEN 0 AND 100", name="ck_generation_jobs_progress"),
  )
  op.create_index("ix_generation_jobs_user_id", "generation_jobs", ["user_id"])
  op.create_index("ix_generation_jobs_project_id", "generation_jobs", ["project_id"])
  op.create_index("ix_generation_jobs_script_hash", "generation_jobs", ["script_hash"])
  op.create_index("ix_generation_jobs_user_status_updated", "generation_jobs", ["user_id", "status", "updated_at"])
  # Single-flight: one queued/processing job per user.
  op.create_index("ux_generation_jobs_user_active", "generation_jobs", ["user_id"], unique=True, postgresql_where=sa.text("status IN ('queued', 'processing')"))

  op.create_table(
    "scene_cache",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("fingerprint", sa.String(64), nullable=False, unique=True),
    sa.Column("language", sa.String(), nullable=False),
    sa.Column("story_type", sa.String(), nullable=False),
    sa.Column("tone", sa.String(), nullable=False),
    sa.Column("scenes_json", postgresql.JSONB(), nullable=False),
    sa.Column("hit_count", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_scene_cache_expires_at", "scene_cache", ["expires_at"])

  op.create_table(
    "scenes",
    sa.Column("id", sa.String(), primary_key=True),
    sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("job_id", sa.String(), sa.ForeignKey("generation_jobs.job_id", ondelete="CASCADE"), nullable=False),
    sa.Column("scene_order", sa.Integer(), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("narration_text", sa.Text(), nullable=False, server_default=""),
    sa.Column("visual_description", sa.Text(), nullable=False, server_default=""),
    sa.Column("mood", sa.String(), nullable=False),
    sa.Column("estimated_duration", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    sa.UniqueConstraint("job_id", "scene_order", name="ux_scenes_job_order"),
  )
  op.create_index("ix_scenes_project_id", "scenes", ["project_id"])
  op.create_index("ix_scenes_job_id", "scenes", ["job_id"])

  op.create_table(
    "submission_events",
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_submission_events_user_created", "submission_events", ["user_id", "created_at"])


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_table("submission_events")
  op.drop_table("scenes")
  op.drop_table("scene_cache")
  op.drop_table("generation_jobs")
  op.drop_table("projects")
