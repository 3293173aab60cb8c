"""
promptrank.engine.scoring — Prompt Scoring Pipeline
====================================================

Pure calculation.  No DB I/O inside the engine.

Pipeline stages:
  PromptSignal → Rating │ Usage │ Recency │ Engagement → Weight → Clamp → ScoreBreakdown

Each component is rounded and clamped to its own cap before weighting.  The
total is the rounded weighted sum clamped to the configured bounds, so every
number in it can be reproduced from the breakdown.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Hashable, Iterable, Mapping
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from typing import TypeVar

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.engine.errors import InvalidInputError, require_non_negative
from promptrank.engine.signals import PromptFacts, PromptSignal

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

__all__ = [
    "ComponentScore",
    "ScoreBreakdown",
    "apply_category_multiplier",
    "batch_compute_scores",
    "compute_score",
    "compute_user_total_score",
    "confidence_multiplier",
    "engagement_score",
    "rating_score",
    "recency_score",
    "round_half_up",
    "usage_score",
]

# ---------------------------------------------------------------------------
# Formula constants
# ---------------------------------------------------------------------------
_USAGE_LOG_FACTOR = 15
_VELOCITY_FACTOR = 5
_VELOCITY_BONUS_CAP = 20
_RECENCY_DECAY_PER_DAY = 0.5
_RECENT_USE_WINDOW_DAYS = 7
_RECENT_USE_BONUS = 10
_FAVORITE_POINTS = 3
_SHARE_POINTS = 2
_COMMENT_POINTS = 1.5
_VIEW_POINTS = 0.1


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round halves toward +infinity (``2.5 → 3``, ``-2.5 → -2``).

    Returns an ``int`` when *ndigits* is 0.  Python's built-in ``round``
    uses banker's rounding, which would disagree with stored scores.
    """
    if ndigits == 0:
        return math.floor(value + 0.5)
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


# ---------------------------------------------------------------------------
# Breakdown: output of the pipeline
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ComponentScore:
    """One weighted component of a prompt score."""

    score: int
    weight: float

    @property
    def contribution(self) -> float:
        return self.score * self.weight


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """Audit trail for a prompt score."""

    rating: ComponentScore
    usage: ComponentScore
    recency: ComponentScore
    engagement: ComponentScore
    total_score: int

    @property
    def weighted_sum(self) -> float:
        return (
            self.rating.contribution
            + self.usage.contribution
            + self.recency.contribution
            + self.engagement.contribution
        )

    def as_dict(self) -> dict:
        """JSON-friendly view, e.g. for storing alongside the prompt."""
        components = {
            name: {
                "score": part.score,
                "weight": part.weight,
                "contribution": round_half_up(part.contribution, 2),
            }
            for name, part in (
                ("rating", self.rating),
                ("usage", self.usage),
                ("recency", self.recency),
                ("engagement", self.engagement),
            )
        }
        return {**components, "total_score": self.total_score}


# ---------------------------------------------------------------------------
# Stage 1: Rating (confidence-damped average)
# ---------------------------------------------------------------------------
def confidence_multiplier(
    rating_count: int, *, config: ScoringConfig = DEFAULT_CONFIG
) -> float:
    """Damping factor for small rating samples.

    Tiers are inclusive lower bounds; the highest satisfied tier wins.
    """
    require_non_negative("rating_count", rating_count)
    for minimum, multiplier in config.confidence_tiers:
        if rating_count >= minimum:
            return multiplier
    return config.confidence_tiers[-1][1]


def rating_score(signal: PromptSignal, *, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Maps 1★ → 0 and 5★ → max, damped by the confidence multiplier."""
    if signal.rating_count == 0:
        return 0
    base = ((signal.average_rating - 1) / 4) * config.max_rating_score
    damped = base * confidence_multiplier(signal.rating_count, config=config)
    return int(_clamp(round_half_up(damped), 0, config.max_rating_score))


# ---------------------------------------------------------------------------
# Stage 2: Usage (log volume + velocity bonus)
# ---------------------------------------------------------------------------
def usage_score(signal: PromptSignal, *, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    if signal.usage_count == 0:
        return 0
    if signal.days_since_created > 0:
        velocity = signal.usage_count / signal.days_since_created
    else:
        velocity = signal.usage_count
    base = math.log10(signal.usage_count + 1) * _USAGE_LOG_FACTOR
    velocity_bonus = min(velocity * _VELOCITY_FACTOR, _VELOCITY_BONUS_CAP)
    return int(round_half_up(min(base + velocity_bonus, config.max_usage_score)))


# ---------------------------------------------------------------------------
# Stage 3: Recency (linear decay + recently-used bonus)
# ---------------------------------------------------------------------------
def recency_score(signal: PromptSignal, *, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    score = max(
        0.0,
        config.max_recency_score - signal.days_since_created * _RECENCY_DECAY_PER_DAY,
    )
    last_used = signal.last_used_days_ago
    if last_used is not None and last_used < _RECENT_USE_WINDOW_DAYS:
        score += max(0.0, _RECENT_USE_BONUS - last_used)
    return int(round_half_up(_clamp(score, 0, config.max_recency_score)))


# ---------------------------------------------------------------------------
# Stage 4: Engagement
# ---------------------------------------------------------------------------
def engagement_score(
    signal: PromptSignal, *, config: ScoringConfig = DEFAULT_CONFIG
) -> int:
    raw = (
        signal.favorite_count * _FAVORITE_POINTS
        + signal.share_count * _SHARE_POINTS
        + signal.comment_count * _COMMENT_POINTS
        + signal.view_count * _VIEW_POINTS
    )
    return int(round_half_up(min(raw, config.max_engagement_score)))


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------
def compute_score(
    signal: PromptSignal, *, config: ScoringConfig = DEFAULT_CONFIG
) -> ScoreBreakdown:
    """Score one prompt.

    This is a PURE function: the same signal always yields the same
    breakdown.

    Raises
    ------
    InvalidInputError
        If any count is negative or the average rating is off the 0–5 scale.
    """
    signal.validate()

    rating = ComponentScore(rating_score(signal, config=config), config.rating_weight)
    usage = ComponentScore(usage_score(signal, config=config), config.usage_weight)
    recency = ComponentScore(recency_score(signal, config=config), config.recency_weight)
    engagement = ComponentScore(
        engagement_score(signal, config=config), config.engagement_weight
    )

    weighted = (
        rating.contribution
        + usage.contribution
        + recency.contribution
        + engagement.contribution
    )
    total = int(_clamp(
        round_half_up(weighted), config.min_total_score, config.max_total_score
    ))

    logger.debug(
        "Scored prompt: rating=%d usage=%d recency=%d engagement=%d → %d",
        rating.score, usage.score, recency.score, engagement.score, total,
    )
    return ScoreBreakdown(
        rating=rating,
        usage=usage,
        recency=recency,
        engagement=engagement,
        total_score=total,
    )


def apply_category_multiplier(
    score: int, category_id: str, *, config: ScoringConfig = DEFAULT_CONFIG
) -> int:
    """Optional post-processing: scale *score* by its category's factor.

    Unknown categories use 1.0.
    """
    require_non_negative("score", score)
    multiplier = config.category_multipliers.get(category_id, 1.0)
    return int(round_half_up(score * multiplier))


def batch_compute_scores(
    signals: Mapping[K, PromptSignal],
    *,
    config: ScoringConfig = DEFAULT_CONFIG,
    executor: Executor | None = None,
) -> dict[K, ScoreBreakdown]:
    """Score many prompts.  Each result depends only on its own signal.

    When *executor* is given, scoring is fanned out over it; the result is
    identical either way.
    """
    keys = list(signals)
    score = partial(compute_score, config=config)
    if executor is None:
        results = map(score, (signals[k] for k in keys))
    else:
        results = executor.map(score, [signals[k] for k in keys])
    return dict(zip(keys, results, strict=True))


# ---------------------------------------------------------------------------
# User total (second stage of the recompute cascade)
# ---------------------------------------------------------------------------
def compute_user_total_score(
    prompts: Iterable[PromptFacts], badge_points: Iterable[int] = ()
) -> int:
    """Sum of the user's ACTIVE prompt scores plus held badge rewards."""
    total = 0
    for prompt in prompts:
        require_non_negative("score", prompt.score)
        if prompt.is_active:
            total += prompt.score
    for points in badge_points:
        if points < 0:
            raise InvalidInputError("badge_points", points, "must not be negative")
        total += points
    return total
