"""
promptrank.engine.signals — Engine value types
===============================================

Immutable snapshots handed to the engine by the caller.  The engine never
mutates them and never keeps them beyond a single call.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from promptrank.database.models import PromptStatus
from promptrank.engine.errors import (
    InvalidInputError,
    require_non_negative,
    require_rating_average,
)

__all__ = [
    "PromptFacts",
    "PromptSignal",
    "UserActivity",
    "UserStanding",
    "UserStats",
    "as_utc",
    "days_between",
]

SECONDS_PER_DAY = 86400


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from *earlier* to *later* (negative if reversed)."""
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


# ---------------------------------------------------------------------------
# PromptSignal: sole input to the scoring engine
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PromptSignal:
    """Measured facts about one prompt.

    ``average_rating`` is ignored when ``rating_count`` is 0.
    ``last_used_days_ago`` is ``None`` when the prompt was never used.
    """

    average_rating: float = 0.0
    rating_count: int = 0
    usage_count: int = 0
    days_since_created: float = 0.0
    last_used_days_ago: float | None = None
    favorite_count: int = 0
    share_count: int = 0
    comment_count: int = 0
    view_count: int = 0

    def validate(self) -> None:
        """Raise :class:`InvalidInputError` on corrupt upstream data."""
        require_rating_average("average_rating", self.average_rating)
        for name in (
            "rating_count",
            "usage_count",
            "days_since_created",
            "favorite_count",
            "share_count",
            "comment_count",
            "view_count",
        ):
            require_non_negative(name, getattr(self, name))
        if self.last_used_days_ago is not None:
            require_non_negative("last_used_days_ago", self.last_used_days_ago)


# ---------------------------------------------------------------------------
# PromptFacts: identity + stored state of a prompt
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PromptFacts:
    """Everything the engine needs to know about a stored prompt.

    ``score`` is the last persisted total score; leaderboards rank on it.
    """

    id: str
    user_id: str
    category_id: str
    created_at: datetime
    title: str = ""
    status: str = PromptStatus.ACTIVE
    is_public: bool = True
    is_featured: bool = False
    score: int = 0
    usage_count: int = 0
    average_rating: float = 0.0
    rating_count: int = 0
    last_used_at: datetime | None = None
    favorite_count: int = 0
    share_count: int = 0
    comment_count: int = 0
    view_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == PromptStatus.ACTIVE

    def to_signal(self, now: datetime | None = None) -> PromptSignal:
        """Derive a :class:`PromptSignal` as of *now* (default: current UTC).

        Timestamps in the future clamp to zero days.
        """
        now = now or datetime.now(UTC)
        last_used = None
        if self.last_used_at is not None:
            last_used = max(0.0, days_between(self.last_used_at, now))
        return PromptSignal(
            average_rating=self.average_rating,
            rating_count=self.rating_count,
            usage_count=self.usage_count,
            days_since_created=max(0.0, days_between(self.created_at, now)),
            last_used_days_ago=last_used,
            favorite_count=self.favorite_count,
            share_count=self.share_count,
            comment_count=self.comment_count,
            view_count=self.view_count,
        )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class UserStanding:
    """A user as seen by the leaderboards."""

    user_id: str
    username: str
    is_active: bool = True
    total_score: int = 0
    total_prompts: int = 0
    average_rating: float = 0.0
    prompts: Sequence[PromptFacts] = ()


@dataclass(frozen=True, slots=True)
class UserActivity:
    """Raw history used to derive :class:`UserStats`.

    Parameters
    ----------
    prompts : Every prompt the user authored, any status.
    rating_values : Individual 1–5 ratings received on those prompts.
    usage_timestamps : When usage-analytics events were recorded for the user.
    held_badge_count : Number of badges the user already holds.
    """

    prompts: Sequence[PromptFacts] = ()
    rating_values: Sequence[int] = ()
    usage_timestamps: Sequence[datetime] = ()
    held_badge_count: int = 0

    def validate(self) -> None:
        for value in self.rating_values:
            if not 1 <= value <= 5:
                raise InvalidInputError("rating_value", value, "must be between 1 and 5")
        require_non_negative("held_badge_count", self.held_badge_count)
        for prompt in self.prompts:
            require_non_negative("usage_count", prompt.usage_count)
            require_non_negative("score", prompt.score)


@dataclass(frozen=True, slots=True)
class UserStats:
    """Aggregate counters evaluated by the badge registry.

    Recomputed on demand from the full history; never persisted.
    """

    total_prompts: int = 0
    active_prompts: int = 0
    total_usage: int = 0
    total_ratings: int = 0
    average_rating: float = 0.0
    longest_streak: int = 0
    featured_prompts: int = 0
    top_ranked_prompts: int = 0
    current_badge_count: int = 0

    def validate(self) -> None:
        require_rating_average("average_rating", self.average_rating)
        for name in (
            "total_prompts",
            "active_prompts",
            "total_usage",
            "total_ratings",
            "longest_streak",
            "featured_prompts",
            "top_ranked_prompts",
            "current_badge_count",
        ):
            require_non_negative(name, getattr(self, name))
