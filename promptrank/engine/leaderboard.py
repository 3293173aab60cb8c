"""
promptrank.engine.leaderboard — Ranked Views
=============================================

Global, per-category and trending rankings over an in-memory snapshot.
Every operation scans its whole input, sorts with a stable sort (full ties
keep input order), truncates, then assigns dense 1-based ranks by position.

Pure calculation; the caller supplies an immutable snapshot.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.engine.errors import (
    InvalidInputError,
    require_non_negative,
    require_rating_average,
)
from promptrank.engine.scoring import round_half_up
from promptrank.engine.signals import PromptFacts, UserStanding, days_between

__all__ = [
    "LeaderboardEntry",
    "LeaderboardPage",
    "LeaderboardType",
    "category_average_rating",
    "category_leaderboard",
    "global_leaderboard",
    "paginate",
    "trending_leaderboard",
    "trending_score",
]

_TRENDING_MIN_MULTIPLIER = 0.1
_TRENDING_USAGE_WEIGHT = 2
_TRENDING_RATING_WEIGHT = 10


class LeaderboardType(enum.StrEnum):
    GLOBAL = "global"
    CATEGORY = "category"
    TRENDING = "trending"


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """One ranked row.

    ``subject_id`` is a user id for global/category boards and a prompt id
    for trending.  ``sort_keys`` holds the values the row was ordered by,
    highest priority first.
    """

    rank: int
    subject_id: str
    display_name: str
    leaderboard_type: LeaderboardType
    sort_keys: dict[str, float | int] = field(default_factory=dict)
    category_id: str | None = None

    @property
    def score(self) -> float | int:
        """The primary sort key."""
        return next(iter(self.sort_keys.values()), 0)


@dataclass(frozen=True, slots=True)
class LeaderboardPage:
    total: int
    page: int
    page_size: int
    entries: list[LeaderboardEntry]


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise InvalidInputError("limit", limit, "must not be negative")


def _rank(
    rows: Iterable[tuple[str, str, dict[str, float | int]]],
    board: LeaderboardType,
    limit: int,
    category_id: str | None = None,
) -> list[LeaderboardEntry]:
    """Stable descending sort on the sort-key tuple, truncate, dense rank."""
    ordered = sorted(rows, key=lambda row: tuple(row[2].values()), reverse=True)
    return [
        LeaderboardEntry(
            rank=position,
            subject_id=subject_id,
            display_name=name,
            leaderboard_type=board,
            sort_keys=keys,
            category_id=category_id,
        )
        for position, (subject_id, name, keys) in enumerate(ordered[:limit], start=1)
    ]


# ---------------------------------------------------------------------------
# Global
# ---------------------------------------------------------------------------
def global_leaderboard(
    users: Iterable[UserStanding], limit: int | None = None, *,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[LeaderboardEntry]:
    """Active users with a positive total, by (score, prompts, avg rating)."""
    limit = config.global_limit if limit is None else limit
    _check_limit(limit)

    rows = []
    for user in users:
        require_non_negative("total_score", user.total_score)
        require_non_negative("total_prompts", user.total_prompts)
        require_rating_average("average_rating", user.average_rating)
        if not user.is_active or user.total_score <= 0:
            continue
        rows.append((user.user_id, user.username, {
            "total_score": user.total_score,
            "total_prompts": user.total_prompts,
            "average_rating": user.average_rating,
        }))
    return _rank(rows, LeaderboardType.GLOBAL, limit)


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------
def category_average_rating(prompts: Sequence[PromptFacts]) -> float:
    """Rating-count-weighted average, two decimals; 0 with no ratings."""
    total_ratings = sum(p.rating_count for p in prompts)
    if total_ratings == 0:
        return 0.0
    weighted = sum(p.average_rating * p.rating_count for p in prompts)
    return round_half_up(weighted / total_ratings, 2)


def category_leaderboard(
    users: Iterable[UserStanding], category_id: str, limit: int | None = None, *,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[LeaderboardEntry]:
    """Active users ranked on their active prompts in *category_id*.

    Users without an active prompt in the category are excluded, whatever
    their global total.
    """
    limit = config.category_limit if limit is None else limit
    _check_limit(limit)

    rows = []
    for user in users:
        if not user.is_active:
            continue
        in_category = [
            p for p in user.prompts if p.category_id == category_id and p.is_active
        ]
        if not in_category:
            continue
        for p in in_category:
            require_non_negative("score", p.score)
            require_non_negative("usage_count", p.usage_count)
        rows.append((user.user_id, user.username, {
            "category_score": sum(p.score for p in in_category),
            "category_usage": sum(p.usage_count for p in in_category),
            "category_average_rating": category_average_rating(in_category),
        }))
    return _rank(rows, LeaderboardType.CATEGORY, limit, category_id=category_id)


# ---------------------------------------------------------------------------
# Trending
# ---------------------------------------------------------------------------
def trending_score(prompt: PromptFacts, days: int, *, now: datetime) -> float:
    """Unrounded trending score; decays linearly with age to a 0.1 floor."""
    age = max(0.0, days_between(prompt.created_at, now))
    age_multiplier = max(_TRENDING_MIN_MULTIPLIER, 1 - age / days)
    return (
        prompt.score * age_multiplier
        + prompt.usage_count * _TRENDING_USAGE_WEIGHT * age_multiplier
        + prompt.average_rating * _TRENDING_RATING_WEIGHT * age_multiplier
    )


def trending_leaderboard(
    prompts: Iterable[PromptFacts],
    days: int | None = None,
    limit: int | None = None,
    *,
    now: datetime | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[LeaderboardEntry]:
    """Active public prompts created within the last *days* days."""
    days = config.trending_days if days is None else days
    limit = config.trending_limit if limit is None else limit
    if days <= 0:
        raise InvalidInputError("days", days, "must be positive")
    _check_limit(limit)

    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=days)

    rows = []
    for prompt in prompts:
        require_non_negative("score", prompt.score)
        require_non_negative("usage_count", prompt.usage_count)
        if not (prompt.is_active and prompt.is_public):
            continue
        if days_between(cutoff, prompt.created_at) < 0:
            continue
        rows.append((prompt.id, prompt.title or prompt.id, {
            "trending_score": int(round_half_up(trending_score(prompt, days, now=now))),
        }))
    return _rank(rows, LeaderboardType.TRENDING, limit)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------
def paginate(
    entries: Sequence[LeaderboardEntry], page: int = 1, page_size: int = 20
) -> LeaderboardPage:
    """Slice an already-ranked board; ranks stay board-wide."""
    if page < 1:
        raise InvalidInputError("page", page, "must be at least 1")
    if page_size < 1:
        raise InvalidInputError("page_size", page_size, "must be at least 1")
    offset = (page - 1) * page_size
    return LeaderboardPage(
        total=len(entries),
        page=page,
        page_size=page_size,
        entries=list(entries[offset:offset + page_size]),
    )
