"""Initial schema: users, categories, prompts, ratings, badges, analytics

Revision ID: 0f3c9a1e7b20
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0f3c9a1e7b20"
down_revision = None
branch_labels = None
depends_on = None

_PROMPT_STATUS = ("active", "pending", "rejected", "archived")
_BADGE_TYPE = ("submission", "usage", "score", "streak", "special")
_ANALYTICS_ACTION = ("view", "copy", "share", "favorite", "report")


def _str_enum(values: tuple[str, ...], name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("total_score", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_total_score", "users", ["total_score"])

    op.create_table(
        "categories",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=True),
    )

    op.create_table(
        "prompts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "category_id", sa.String(100),
            sa.ForeignKey("categories.id"), nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", _str_enum(_PROMPT_STATUS, "promptstatus"), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=True),
        sa.Column("is_featured", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("score >= 0", name="ck_prompts_score_non_negative"),
    )
    op.create_index("ix_prompts_user_id", "prompts", ["user_id"])
    op.create_index("ix_prompts_category_status", "prompts", ["category_id", "status"])
    op.create_index("ix_prompts_created_at", "prompts", ["created_at"])

    op.create_table(
        "prompt_ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "prompt_id", sa.String(36),
            sa.ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("rater_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("prompt_id", "rater_id", name="uq_prompt_ratings_prompt_rater"),
        sa.CheckConstraint("value >= 1 AND value <= 5", name="ck_prompt_ratings_value"),
    )

    op.create_table(
        "badges",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("badge_type", _str_enum(_BADGE_TYPE, "badgetype"), nullable=False),
        sa.Column("points_reward", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.CheckConstraint("points_reward >= 0", name="ck_badges_points_non_negative"),
    )

    op.create_table(
        "user_badges",
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("badge_id", sa.String(50), sa.ForeignKey("badges.id"), primary_key=True),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "usage_analytics",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column(
            "prompt_id", sa.String(36),
            sa.ForeignKey("prompts.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("action", _str_enum(_ANALYTICS_ACTION, "analyticsaction"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_usage_analytics_prompt_action", "usage_analytics", ["prompt_id", "action"],
    )
    op.create_index(
        "ix_usage_analytics_user_created", "usage_analytics", ["user_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_usage_analytics_user_created", table_name="usage_analytics")
    op.drop_index("ix_usage_analytics_prompt_action", table_name="usage_analytics")
    op.drop_table("usage_analytics")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_table("prompt_ratings")
    op.drop_index("ix_prompts_created_at", table_name="prompts")
    op.drop_index("ix_prompts_category_status", table_name="prompts")
    op.drop_index("ix_prompts_user_id", table_name="prompts")
    op.drop_table("prompts")
    op.drop_table("categories")
    op.drop_index("ix_users_total_score", table_name="users")
    op.drop_table("users")
