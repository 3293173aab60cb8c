"""
promptrank.services.scoring_service — Score Recompute Pipeline
===============================================================

Shared service module for any caller that writes ratings.  Implements the
recompute cascade as an explicit two-stage pipeline:

    rating written → stage 1: prompt score → stage 2: owner's total score

Stage 2 only runs when stage 1 actually changed the stored score, and
neither stage writes anything that would start the cascade again.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.database.models import (
    AnalyticsAction,
    Prompt,
    PromptRating,
    UsageAnalytics,
    User,
)
from promptrank.engine.errors import InvalidInputError
from promptrank.engine.scoring import (
    ScoreBreakdown,
    apply_category_multiplier,
    batch_compute_scores,
    compute_score,
    compute_user_total_score,
)
from promptrank.services.facts import get_badge_points, load_prompt_facts, to_prompt_facts

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass
class RecomputeResult:
    """Outcome of one pass through the cascade."""

    prompt_id: str
    user_id: str
    old_score: int
    new_score: int
    breakdown: ScoreBreakdown
    user_total: int | None = None  # None when stage 2 was skipped

    @property
    def changed(self) -> bool:
        return self.old_score != self.new_score


def _final_score(breakdown: ScoreBreakdown, category_id: str, config: ScoringConfig) -> int:
    if config.apply_category_multipliers:
        return apply_category_multiplier(breakdown.total_score, category_id, config=config)
    return breakdown.total_score


# ---------------------------------------------------------------------------
# Stage 1: prompt score
# ---------------------------------------------------------------------------
def recompute_prompt_score(
    session: Session,
    prompt_id: str,
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> RecomputeResult:
    """Recompute and store one prompt's score (no commit).

    Raises
    ------
    ValueError
        If the prompt doesn't exist.
    """
    prompt = session.get(Prompt, prompt_id)
    if prompt is None:
        raise ValueError(f"Prompt not found: {prompt_id}")

    facts = to_prompt_facts([prompt], session)[0]
    breakdown = compute_score(facts.to_signal(now), config=config)
    new_score = _final_score(breakdown, prompt.category_id, config)

    old_score = prompt.score
    prompt.score = new_score
    session.flush()

    return RecomputeResult(
        prompt_id=prompt.id,
        user_id=prompt.user_id,
        old_score=old_score,
        new_score=new_score,
        breakdown=breakdown,
    )


# ---------------------------------------------------------------------------
# Stage 2: user total
# ---------------------------------------------------------------------------
def recompute_user_total(session: Session, user_id: str) -> int:
    """Store Σ active prompt scores + held badge points on the user (no commit)."""
    user = session.get(User, user_id)
    if user is None:
        raise ValueError(f"User not found: {user_id}")

    prompts = load_prompt_facts(session, user_id=user_id)
    total = compute_user_total_score(prompts, get_badge_points(session, user_id))
    user.total_score = total
    session.flush()
    return total


def _cascade(
    session: Session, prompt_id: str, config: ScoringConfig, now: datetime | None
) -> RecomputeResult:
    result = recompute_prompt_score(session, prompt_id, config=config, now=now)
    if result.changed:
        result.user_total = recompute_user_total(session, result.user_id)
    return result


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------
def handle_rating_change(
    engine: Engine,
    prompt_id: str,
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> RecomputeResult:
    """Run the cascade after a rating on *prompt_id* was inserted or updated."""
    with Session(engine) as session:
        result = _cascade(session, prompt_id, config, now)
        session.commit()

    logger.info(
        "Prompt %s rescored %d → %d%s",
        result.prompt_id, result.old_score, result.new_score,
        f" (user {result.user_id} total {result.user_total})"
        if result.user_total is not None else "",
    )
    return result


def submit_rating(
    engine: Engine,
    *,
    prompt_id: str,
    rater_id: str,
    value: int,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> RecomputeResult:
    """Insert or update the rater's rating, then run the cascade.

    One rating per (prompt, rater): a second submission replaces the first.
    Rating write and rescoring commit together.

    Raises
    ------
    InvalidInputError
        If *value* is not an integer from 1 to 5.
    """
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise InvalidInputError("rating", value, "must be an integer from 1 to 5")

    with Session(engine) as session:
        existing = session.scalar(
            select(PromptRating).where(
                PromptRating.prompt_id == prompt_id,
                PromptRating.rater_id == rater_id,
            )
        )
        if existing is None:
            session.add(PromptRating(prompt_id=prompt_id, rater_id=rater_id, value=value))
        else:
            existing.value = value
        session.flush()

        result = _cascade(session, prompt_id, config, now)
        session.commit()

    logger.info(
        "Rating %d by %s on prompt %s → score %d",
        value, rater_id, prompt_id, result.new_score,
    )
    return result


def record_usage(
    engine: Engine,
    *,
    prompt_id: str,
    action: AnalyticsAction | str = AnalyticsAction.COPY,
    user_id: str | None = None,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
) -> RecomputeResult:
    """Journal one analytics event on *prompt_id*, then run the cascade.

    A COPY counts as a use: it also bumps ``usage_count`` and
    ``last_used_at`` on the prompt row.  Event write and rescoring commit
    together.

    Raises
    ------
    ValueError
        If the prompt doesn't exist or *action* is not a known action.
    """
    action = AnalyticsAction(action)
    now = now or datetime.now(UTC)

    with Session(engine) as session:
        prompt = session.get(Prompt, prompt_id)
        if prompt is None:
            raise ValueError(f"Prompt not found: {prompt_id}")

        session.add(UsageAnalytics(
            user_id=user_id, prompt_id=prompt_id, action=action, created_at=now,
        ))
        if action == AnalyticsAction.COPY:
            prompt.usage_count = (prompt.usage_count or 0) + 1
            prompt.last_used_at = now
        session.flush()

        result = _cascade(session, prompt_id, config, now)
        session.commit()

    logger.info(
        "Recorded %s on prompt %s → score %d", action, prompt_id, result.new_score,
    )
    return result


def recompute_all(
    engine: Engine,
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    now: datetime | None = None,
    executor: Executor | None = None,
) -> int:
    """Rescore every prompt, then refresh every user's total.

    Returns the number of prompts whose stored score changed.
    """
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        facts = load_prompt_facts(session)
        breakdowns = batch_compute_scores(
            {f.id: f.to_signal(now) for f in facts}, config=config, executor=executor,
        )

        changed = 0
        for f in facts:
            new_score = _final_score(breakdowns[f.id], f.category_id, config)
            if new_score != f.score:
                session.get(Prompt, f.id).score = new_score
                changed += 1
        session.flush()

        for user_id in session.scalars(select(User.id)).all():
            recompute_user_total(session, user_id)

        session.commit()

    logger.info("Full recompute: %d of %d prompt scores changed", changed, len(facts))
    return changed
