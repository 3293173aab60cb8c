"""
promptrank.services.leaderboard_service — Leaderboard Queries
==============================================================

Loads a read-only snapshot from the database and hands it to the
leaderboard engine.  Ranking always happens in the engine so that ties are
broken the same way everywhere.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.database.models import Prompt, PromptStatus
from promptrank.engine.leaderboard import (
    LeaderboardPage,
    category_leaderboard,
    global_leaderboard,
    paginate,
    trending_leaderboard,
)
from promptrank.services.facts import load_user_standings, to_prompt_facts


def get_global_leaderboard(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 20,
    limit: int | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> LeaderboardPage:
    entries = global_leaderboard(load_user_standings(session), limit, config=config)
    return paginate(entries, page, page_size)


def get_category_leaderboard(
    session: Session,
    category_id: str,
    *,
    page: int = 1,
    page_size: int = 20,
    limit: int | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> LeaderboardPage:
    entries = category_leaderboard(
        load_user_standings(session), category_id, limit, config=config,
    )
    return paginate(entries, page, page_size)


def get_trending_prompts(
    session: Session,
    *,
    days: int | None = None,
    limit: int | None = None,
    page: int = 1,
    page_size: int = 20,
    now: datetime | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> LeaderboardPage:
    """Trending board over recent active public prompts.

    The query pre-filters on status and visibility; the age window is applied
    by the engine so the cutoff matches the scoring clock exactly.
    """
    now = now or datetime.now(UTC)
    window = config.trending_days if days is None else days
    # One day of slack so naive/aware timestamp storage can't drop borderline rows.
    since = now - timedelta(days=max(window, 0) + 1)
    prompts = session.scalars(
        select(Prompt)
        .where(
            Prompt.status == PromptStatus.ACTIVE,
            Prompt.is_public.is_(True),
            Prompt.created_at >= since.replace(tzinfo=None),
        )
        .order_by(Prompt.created_at, Prompt.id)
    ).all()
    entries = trending_leaderboard(
        to_prompt_facts(list(prompts), session), days, limit, now=now, config=config,
    )
    return paginate(entries, page, page_size)
