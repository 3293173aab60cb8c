"""
promptrank.services.badge_service — Badge Awarding
===================================================

Builds a user's stats from their full history, asks the eligibility engine
which badges are newly earned, and persists the grants.  Granting changes
the user's badge points, so the user's total score is refreshed afterwards.

Per-grant inserts run inside a SAVEPOINT: a concurrent award of the same
badge hits the (user_id, badge_id) primary key and is skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.database.models import Badge, User, UserBadge
from promptrank.engine.badges import BadgeGrant, check_eligibility, compute_user_stats
from promptrank.engine.signals import UserStats
from promptrank.services.facts import get_held_badge_ids, load_user_activity
from promptrank.services.scoring_service import recompute_user_total

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def get_user_stats(
    session: Session, user_id: str, *, config: ScoringConfig = DEFAULT_CONFIG
) -> UserStats:
    """Recompute :class:`UserStats` from the user's full history."""
    return compute_user_stats(load_user_activity(session, user_id), config=config)


def award_badges(
    engine: Engine,
    user_id: str,
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> list[BadgeGrant]:
    """Evaluate and persist newly earned badges for *user_id*.

    Only badges present and active in the ``badges`` table are stored.
    Returns the grants that were actually persisted.

    Raises
    ------
    ValueError
        If the user doesn't exist.
    """
    with Session(engine) as session:
        if session.get(User, user_id) is None:
            raise ValueError(f"User not found: {user_id}")

        stats = get_user_stats(session, user_id, config=config)
        held = get_held_badge_ids(session, user_id)
        grants = check_eligibility(stats, held, now=now)

        catalogue = set(session.scalars(
            select(Badge.id).where(Badge.is_active.is_(True))
        ).all())

        persisted: list[BadgeGrant] = []
        for grant in grants:
            if grant.badge_id not in catalogue:
                logger.warning(
                    "Badge %s earned by %s but missing from catalogue, skipped",
                    grant.badge_id, user_id,
                )
                continue
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(UserBadge(
                        user_id=user_id,
                        badge_id=grant.badge_id,
                        earned_at=grant.earned_at,
                    ))
                    session.flush()
            except IntegrityError:
                # Granted concurrently; already held.
                continue
            persisted.append(grant)
            logger.info("Badge granted: %s (%s) to user %s", grant.badge_id, grant.type, user_id)

        if persisted:
            recompute_user_total(session, user_id)
        session.commit()

    return persisted


def award_all_badges(
    engine: Engine,
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> dict[str, list[BadgeGrant]]:
    """Run :func:`award_badges` for every active user.

    Returns user_id → grants, omitting users who earned nothing.
    """
    with Session(engine) as session:
        user_ids = session.scalars(
            select(User.id).where(User.is_active.is_(True)).order_by(User.id)
        ).all()

    awarded: dict[str, list[BadgeGrant]] = {}
    for user_id in user_ids:
        grants = award_badges(engine, user_id, config=config, now=now)
        if grants:
            awarded[user_id] = grants
    return awarded
