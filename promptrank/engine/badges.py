"""
promptrank.engine.badges — Badge Eligibility
=============================================

Registry implementation for badge evaluation.  Each badge id maps to a
pure predicate over :class:`UserStats`.  Already-held badges are skipped,
so repeated checks never grant the same badge twice.

This module is pure calculation, no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Set
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.database.models import BadgeType
from promptrank.engine.errors import InvalidInputError
from promptrank.engine.scoring import round_half_up
from promptrank.engine.signals import UserActivity, UserStats, as_utc

logger = logging.getLogger(__name__)

__all__ = [
    "BADGE_REGISTRY",
    "BadgeDefinition",
    "BadgeGrant",
    "badge_points",
    "check_eligibility",
    "compute_longest_streak",
    "compute_user_stats",
    "get_badge",
]


# ---------------------------------------------------------------------------
# Registry entries
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    """A catalogue badge and the condition that earns it."""

    id: str
    type: BadgeType
    name: str
    description: str
    predicate: Callable[[UserStats], bool]
    points: int = 0


@dataclass(frozen=True, slots=True)
class BadgeGrant:
    """A newly earned badge, ready to be persisted by the caller."""

    badge_id: str
    type: BadgeType
    earned_at: datetime


def _prompts_at_least(n: int) -> Callable[[UserStats], bool]:
    return lambda s: s.total_prompts >= n


def _usage_at_least(n: int) -> Callable[[UserStats], bool]:
    return lambda s: s.total_usage >= n


def _rated_at_least(avg: float, min_ratings: int) -> Callable[[UserStats], bool]:
    return lambda s: s.average_rating >= avg and s.total_ratings >= min_ratings


def _streak_at_least(days: int) -> Callable[[UserStats], bool]:
    return lambda s: s.longest_streak >= days


# Iteration order is the grant order.
BADGE_REGISTRY: tuple[BadgeDefinition, ...] = (
    # Submission
    BadgeDefinition("first-steps", BadgeType.SUBMISSION, "First Steps",
                    "Submit your first prompt", _prompts_at_least(1), 10),
    BadgeDefinition("getting-started", BadgeType.SUBMISSION, "Getting Started",
                    "Submit 5 prompts", _prompts_at_least(5), 25),
    BadgeDefinition("prolific-creator", BadgeType.SUBMISSION, "Prolific Creator",
                    "Submit 25 prompts", _prompts_at_least(25), 100),
    BadgeDefinition("content-machine", BadgeType.SUBMISSION, "Content Machine",
                    "Submit 100 prompts", _prompts_at_least(100)),
    # Usage
    BadgeDefinition("popular-choice", BadgeType.USAGE, "Popular Choice",
                    "Get 100 total uses across all prompts", _usage_at_least(100), 50),
    BadgeDefinition("crowd-favorite", BadgeType.USAGE, "Crowd Favorite",
                    "Get 500 total uses across all prompts", _usage_at_least(500), 200),
    BadgeDefinition("viral-creator", BadgeType.USAGE, "Viral Creator",
                    "Get 2000 total uses across all prompts", _usage_at_least(2000)),
    # Rating
    BadgeDefinition("well-received", BadgeType.SCORE, "Well Received",
                    "Maintain 3.5+ star average with 5+ ratings", _rated_at_least(3.5, 5)),
    BadgeDefinition("highly-rated", BadgeType.SCORE, "Highly Rated",
                    "Maintain 4+ star average with 10+ ratings", _rated_at_least(4.0, 10), 75),
    BadgeDefinition("excellence", BadgeType.SCORE, "Excellence",
                    "Maintain 4.5+ star average with 25+ ratings", _rated_at_least(4.5, 25), 150),
    BadgeDefinition("perfection", BadgeType.SCORE, "Perfection",
                    "Maintain 4.8+ star average with 50+ ratings", _rated_at_least(4.8, 50)),
    # Streak
    BadgeDefinition("consistent", BadgeType.STREAK, "Consistent",
                    "Be active 7 days in a row", _streak_at_least(7)),
    BadgeDefinition("dedicated", BadgeType.STREAK, "Dedicated",
                    "Be active 30 days in a row", _streak_at_least(30)),
    # Special
    BadgeDefinition("trendsetter", BadgeType.SPECIAL, "Trendsetter",
                    "Have a prompt featured", lambda s: s.featured_prompts >= 1),
    BadgeDefinition("community-favorite", BadgeType.SPECIAL, "Community Favorite",
                    "Have 3 top-ranked prompts", lambda s: s.top_ranked_prompts >= 3),
)

_BY_ID: dict[str, BadgeDefinition] = {b.id: b for b in BADGE_REGISTRY}


def get_badge(badge_id: str) -> BadgeDefinition | None:
    return _BY_ID.get(badge_id)


def badge_points(badge_id: str, *, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Point reward for *badge_id*; config overrides win.  Unknown ids → 0."""
    if badge_id in config.badge_points:
        return config.badge_points[badge_id]
    badge = _BY_ID.get(badge_id)
    return badge.points if badge else 0


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def check_eligibility(
    stats: UserStats,
    held_badge_ids: Set[str],
    *,
    now: datetime | None = None,
) -> list[BadgeGrant]:
    """Return grants for badges the user newly qualifies for.

    Parameters
    ----------
    stats : Snapshot of the user's aggregate counters.
    held_badge_ids : Badge ids the user already holds; never re-granted.
    now : Timestamp stamped on each grant (default: current UTC time).

    Raises
    ------
    InvalidInputError
        If any counter in *stats* is negative.
    """
    stats.validate()
    earned_at = now or datetime.now(UTC)
    grants: list[BadgeGrant] = []

    for badge in BADGE_REGISTRY:
        if badge.id in held_badge_ids:
            continue
        if badge.predicate(stats):
            grants.append(BadgeGrant(badge.id, badge.type, earned_at))
            logger.debug("Badge eligible: %s (%s)", badge.id, badge.type)

    return grants


# ---------------------------------------------------------------------------
# Stats derivation
# ---------------------------------------------------------------------------
def _to_day(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            raise InvalidInputError("activity_date", value, "must be an ISO date") from None
    raise InvalidInputError("activity_date", value, "must be a date, datetime or ISO string")


def compute_longest_streak(dates: Iterable[date | datetime | str]) -> int:
    """Longest run of consecutive calendar days with at least one event.

    Datetimes are truncated to their UTC calendar day.  Empty input → 0.
    """
    days = sorted(_to_day(d) for d in dates)
    if not days:
        return 0

    longest = current = 1
    one_day = timedelta(days=1)
    for prev, day in zip(days, days[1:]):
        gap = day - prev
        if gap == one_day:
            current += 1
            longest = max(longest, current)
        elif gap > one_day:
            current = 1
        # Same-day duplicates neither extend nor reset the run.
    return longest


def compute_user_stats(
    activity: UserActivity, *, config: ScoringConfig = DEFAULT_CONFIG
) -> UserStats:
    """Derive :class:`UserStats` from a user's full history."""
    activity.validate()
    prompts = activity.prompts

    total_ratings = len(activity.rating_values)
    average_rating = (
        round_half_up(sum(activity.rating_values) / total_ratings, 2)
        if total_ratings
        else 0.0
    )

    activity_days = {_to_day(p.created_at) for p in prompts}
    activity_days.update(_to_day(ts) for ts in activity.usage_timestamps)

    return UserStats(
        total_prompts=len(prompts),
        active_prompts=sum(1 for p in prompts if p.is_active),
        total_usage=sum(p.usage_count for p in prompts),
        total_ratings=total_ratings,
        average_rating=average_rating,
        longest_streak=compute_longest_streak(activity_days),
        featured_prompts=sum(1 for p in prompts if p.is_featured),
        top_ranked_prompts=sum(1 for p in prompts if p.score >= config.top_ranked_threshold),
        current_badge_count=activity.held_badge_count,
    )
