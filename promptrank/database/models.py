"""
promptrank.database.models — SQLAlchemy 2.0 Data Models
========================================================

Storage for the facts the engine consumes and the values it produces.

Tables:
- users            — Community members with their accumulated total score
- categories       — Prompt taxonomy (slug primary key)
- prompts          — Submitted prompts with the persisted prompt score
- prompt_ratings   — One 1–5 rating per (prompt, rater)
- badges           — Badge catalogue (slug primary key) with point rewards
- user_badges      — Earned badges
- usage_analytics  — Append-only view/copy/share/favorite/report journal
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all PromptRank ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PromptStatus(enum.StrEnum):
    """Moderation state of a prompt.  Only ACTIVE prompts score."""
    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class BadgeType(enum.StrEnum):
    """Badge families in the catalogue."""
    SUBMISSION = "submission"
    USAGE = "usage"
    SCORE = "score"
    STREAK = "streak"
    SPECIAL = "special"


class AnalyticsAction(enum.StrEnum):
    """Actions recorded in usage_analytics."""
    VIEW = "view"
    COPY = "copy"
    SHARE = "share"
    FAVORITE = "favorite"
    REPORT = "report"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    total_score: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    prompts: Mapped[list[Prompt]] = relationship(
        back_populates="author", cascade="all, delete-orphan"
    )
    badges: Mapped[list[UserBadge]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_users_total_score", "total_score"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.username!r} score={self.total_score}>"


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # slug
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<Category id={self.id!r}>"


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------
class Prompt(Base):
    __tablename__ = "prompts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("categories.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Enum(PromptStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=PromptStatus.ACTIVE,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    score: Mapped[int] = mapped_column(Integer, default=0)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    author: Mapped[User] = relationship(back_populates="prompts")
    ratings: Mapped[list[PromptRating]] = relationship(
        back_populates="prompt", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("score >= 0", name="ck_prompts_score_non_negative"),
        Index("ix_prompts_user_id", "user_id"),
        Index("ix_prompts_category_status", "category_id", "status"),
        Index("ix_prompts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Prompt id={self.id} score={self.score} status={self.status}>"


# ---------------------------------------------------------------------------
# Ratings: at most one per (prompt, rater)
# ---------------------------------------------------------------------------
class PromptRating(Base):
    __tablename__ = "prompt_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prompt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    rater_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    prompt: Mapped[Prompt] = relationship(back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("prompt_id", "rater_id", name="uq_prompt_ratings_prompt_rater"),
        CheckConstraint("value >= 1 AND value <= 5", name="ck_prompt_ratings_value"),
    )


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------
class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)  # registry id
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    badge_type: Mapped[str] = mapped_column(
        Enum(BadgeType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    points_reward: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    earned_by: Mapped[list[UserBadge]] = relationship(back_populates="badge")

    __table_args__ = (
        CheckConstraint("points_reward >= 0", name="ck_badges_points_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Badge id={self.id!r} points={self.points_reward}>"


class UserBadge(Base):
    __tablename__ = "user_badges"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    badge_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("badges.id"), primary_key=True
    )
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="badges")
    badge: Mapped[Badge] = relationship(back_populates="earned_by")


# ---------------------------------------------------------------------------
# Usage analytics: append-only journal
# ---------------------------------------------------------------------------
class UsageAnalytics(Base):
    __tablename__ = "usage_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=True
    )
    prompt_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=True
    )
    action: Mapped[str] = mapped_column(
        Enum(AnalyticsAction, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_usage_analytics_prompt_action", "prompt_id", "action"),
        Index("ix_usage_analytics_user_created", "user_id", "created_at"),
    )
