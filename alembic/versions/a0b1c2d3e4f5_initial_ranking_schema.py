"""Initial ranking schema.

Creates projects, keyword_rankings, ranking_history, notifications,
project_integrations and analysis_cache.

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "a0b1c2d3e4f5"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("market_segment", sa.String(255), nullable=True),
        sa.Column("competitors", postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("is_active", sa.Boolean, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_projects_user_id", "projects", ["user_id"])

    op.create_table(
        "keyword_rankings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("keyword", sa.String(500), nullable=False),
        sa.Column("search_engine", sa.String(20), nullable=False, server_default="google"),
        sa.Column("device", sa.String(20), nullable=False, server_default="desktop"),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("current_position", sa.Integer, nullable=True),
        sa.Column("previous_position", sa.Integer, nullable=True),
        sa.Column("url", sa.String(2048), nullable=True),
        sa.Column("data_source", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("impressions", sa.Integer, nullable=True),
        sa.Column("clicks", sa.Integer, nullable=True),
        sa.Column("ctr", sa.Float, nullable=True),
        sa.Column("metadata", postgresql.JSONB, server_default=sa.text("'{}'::jsonb")),
        *_timestamps(),
        sa.UniqueConstraint(
            "project_id", "keyword", "search_engine", "device", "location", name="uq_keyword_ranking_tuple"
        ),
        sa.CheckConstraint(
            "data_source IN ('serp_api', 'search_console', 'manual', 'simulated')",
            name="ck_keyword_rankings_data_source",
        ),
    )
    op.create_index("ix_keyword_rankings_project_id", "keyword_rankings", ["project_id"])

    op.create_table(
        "ranking_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "keyword_ranking_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("keyword_rankings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("change_from_previous", sa.Integer, server_default="0"),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("metadata", postgresql.JSONB, server_default=sa.text("'{}'::jsonb")),
    )
    op.create_index("ix_ranking_history_ranking_recorded", "ranking_history", ["keyword_ranking_id", "recorded_at"])

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("is_read", sa.Boolean, server_default=sa.text("false")),
        sa.Column("action_url", sa.String(2048), nullable=True),
        sa.Column("metadata", postgresql.JSONB, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_project_id", "notifications", ["project_id"])

    op.create_table(
        "project_integrations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("integration_type", sa.String(30), nullable=False, server_default="search_console"),
        sa.Column("property_id", sa.String(500), nullable=True),
        sa.Column("access_token", sa.LargeBinary, nullable=True),
        sa.Column("refresh_token", sa.LargeBinary, nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("account_email", sa.String(255), nullable=True),
        sa.Column("sync_status", sa.String(20), server_default="active"),
        sa.Column("sync_error", sa.Text, nullable=True),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("project_id", "integration_type", name="uq_project_integration"),
    )
    op.create_index("ix_project_integrations_project_id", "project_integrations", ["project_id"])

    op.create_table(
        "analysis_cache",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("cache_key", sa.String(1000), nullable=False),
        sa.Column("data", postgresql.JSONB, nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_analysis_cache_cache_key", "analysis_cache", ["cache_key"], unique=True)
    op.create_index("ix_analysis_cache_expires_at", "analysis_cache", ["expires_at"])


def downgrade() -> None:
    op.drop_table("analysis_cache")
    op.drop_table("project_integrations")
    op.drop_table("notifications")
    op.drop_table("ranking_history")
    op.drop_table("keyword_rankings")
    op.drop_table("projects")
