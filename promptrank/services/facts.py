"""
promptrank.services.facts — Fact Providers
===========================================

Read-side queries that turn stored rows into the engine's value types.
Each function takes an open :class:`Session`; callers own the transaction.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from promptrank.database.models import (
    AnalyticsAction,
    Badge,
    Prompt,
    PromptRating,
    PromptStatus,
    UsageAnalytics,
    User,
    UserBadge,
)
from promptrank.engine.leaderboard import category_average_rating
from promptrank.engine.signals import (
    PromptFacts,
    PromptSignal,
    UserActivity,
    UserStanding,
    as_utc,
)


def _rating_aggregates(
    session: Session, prompt_ids: Collection[str]
) -> dict[str, tuple[float, int]]:
    """prompt_id → (average rating, rating count)."""
    if not prompt_ids:
        return {}
    rows = session.execute(
        select(
            PromptRating.prompt_id,
            func.avg(PromptRating.value).label("avg"),
            func.count().label("cnt"),
        )
        .where(PromptRating.prompt_id.in_(prompt_ids))
        .group_by(PromptRating.prompt_id)
    ).all()
    return {row.prompt_id: (float(row.avg), int(row.cnt)) for row in rows}


def _analytics_aggregates(
    session: Session, prompt_ids: Collection[str]
) -> dict[str, dict[str, tuple[int, datetime | None]]]:
    """prompt_id → {action: (count, latest event time)} from usage_analytics."""
    aggregates: dict[str, dict[str, tuple[int, datetime | None]]] = defaultdict(dict)
    if not prompt_ids:
        return aggregates
    rows = session.execute(
        select(
            UsageAnalytics.prompt_id,
            UsageAnalytics.action,
            func.count().label("cnt"),
            func.max(UsageAnalytics.created_at).label("latest"),
        )
        .where(UsageAnalytics.prompt_id.in_(prompt_ids))
        .group_by(UsageAnalytics.prompt_id, UsageAnalytics.action)
    ).all()
    for row in rows:
        aggregates[row.prompt_id][str(row.action)] = (int(row.cnt), row.latest)
    return aggregates


def _latest(*moments: datetime | None) -> datetime | None:
    present = [as_utc(m) for m in moments if m is not None]
    return max(present) if present else None


def to_prompt_facts(
    prompts: list[Prompt], session: Session
) -> list[PromptFacts]:
    """Attach rating and analytics aggregates to *prompts*.

    Usage is the larger of the stored ``usage_count`` and the number of COPY
    events; ``last_used_at`` is the later of the stored column and the newest
    COPY event.  Both sources agree when usage goes through ``record_usage``.
    """
    ids = [p.id for p in prompts]
    ratings = _rating_aggregates(session, ids)
    analytics = _analytics_aggregates(session, ids)

    facts = []
    for p in prompts:
        avg, count = ratings.get(p.id, (0.0, 0))
        actions = analytics.get(p.id, {})
        copies, last_copy = actions.get(AnalyticsAction.COPY, (0, None))
        facts.append(PromptFacts(
            id=p.id,
            user_id=p.user_id,
            category_id=p.category_id,
            created_at=p.created_at,
            title=p.title,
            status=PromptStatus(p.status),
            is_public=p.is_public,
            is_featured=p.is_featured,
            score=p.score,
            usage_count=max(p.usage_count or 0, copies),
            average_rating=avg,
            rating_count=count,
            last_used_at=_latest(p.last_used_at, last_copy),
            favorite_count=actions.get(AnalyticsAction.FAVORITE, (0, None))[0],
            share_count=actions.get(AnalyticsAction.SHARE, (0, None))[0],
            view_count=actions.get(AnalyticsAction.VIEW, (0, None))[0],
        ))
    return facts


def load_prompt_facts(
    session: Session,
    *,
    prompt_ids: Collection[str] | None = None,
    user_id: str | None = None,
) -> list[PromptFacts]:
    """Load prompts (optionally filtered) as :class:`PromptFacts`.

    Rows come back in creation order so downstream ties are reproducible.
    """
    query = select(Prompt).order_by(Prompt.created_at, Prompt.id)
    if prompt_ids is not None:
        query = query.where(Prompt.id.in_(prompt_ids))
    if user_id is not None:
        query = query.where(Prompt.user_id == user_id)
    prompts = list(session.scalars(query).all())
    return to_prompt_facts(prompts, session)


def get_held_badge_ids(session: Session, user_id: str) -> set[str]:
    """Badge ids the user already holds."""
    rows = session.scalars(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    ).all()
    return set(rows)


def get_badge_points(session: Session, user_id: str) -> list[int]:
    """Point rewards of every badge the user holds."""
    rows = session.scalars(
        select(Badge.points_reward)
        .join(UserBadge, UserBadge.badge_id == Badge.id)
        .where(UserBadge.user_id == user_id)
    ).all()
    return [int(points or 0) for points in rows]


def load_user_activity(session: Session, user_id: str) -> UserActivity:
    """Full history needed for :func:`compute_user_stats`.

    Usage timestamps are the analytics events the user performed.
    """
    prompts = load_prompt_facts(session, user_id=user_id)
    prompt_ids = [p.id for p in prompts]

    rating_values: list[int] = []
    if prompt_ids:
        rating_values = list(session.scalars(
            select(PromptRating.value).where(PromptRating.prompt_id.in_(prompt_ids))
        ).all())

    usage_timestamps = list(session.scalars(
        select(UsageAnalytics.created_at).where(UsageAnalytics.user_id == user_id)
    ).all())

    held = session.scalar(
        select(func.count()).select_from(UserBadge).where(UserBadge.user_id == user_id)
    ) or 0

    return UserActivity(
        prompts=tuple(prompts),
        rating_values=tuple(rating_values),
        usage_timestamps=tuple(usage_timestamps),
        held_badge_count=int(held),
    )


def load_user_standings(session: Session) -> list[UserStanding]:
    """Every user with their prompts, for the leaderboards.

    ``total_prompts`` and ``average_rating`` cover active prompts only.
    """
    users = session.scalars(select(User).order_by(User.created_at, User.id)).all()
    facts = load_prompt_facts(session)
    by_user: dict[str, list[PromptFacts]] = defaultdict(list)
    for prompt in facts:
        by_user[prompt.user_id].append(prompt)

    standings = []
    for user in users:
        prompts = by_user.get(user.id, [])
        active = [p for p in prompts if p.is_active]
        standings.append(UserStanding(
            user_id=user.id,
            username=user.username,
            is_active=user.is_active,
            total_score=user.total_score,
            total_prompts=len(active),
            average_rating=category_average_rating(active),
            prompts=tuple(prompts),
        ))
    return standings


def build_prompt_signal(
    session: Session, prompt_id: str, *, now: datetime | None = None
) -> PromptSignal:
    """Scoring input for one stored prompt.

    Raises
    ------
    ValueError
        If the prompt doesn't exist.
    """
    prompt = session.get(Prompt, prompt_id)
    if prompt is None:
        raise ValueError(f"Prompt not found: {prompt_id}")
    return to_prompt_facts([prompt], session)[0].to_signal(now)
