"""
tests/test_scoring_service.py — Recompute Cascade Integration Tests
====================================================================
Covers rating submission, the two-stage prompt → user recompute, and the
full rescoring pass.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import NOW, add_prompt, add_user
from promptrank.config import DEFAULT_CONFIG
from promptrank.database.models import (
    AnalyticsAction,
    Prompt,
    PromptRating,
    UsageAnalytics,
    User,
    UserBadge,
)
from promptrank.engine.errors import InvalidInputError
from promptrank.services import scoring_service
from promptrank.services.facts import build_prompt_signal


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    add_user(db_engine, "author")
    add_user(db_engine, "rater-1")
    add_user(db_engine, "rater-2")
    add_prompt(db_engine, "p1", "author")
    return db_engine


def _score(engine, prompt_id: str) -> int:
    with Session(engine) as session:
        return session.get(Prompt, prompt_id).score


def _total(engine, user_id: str) -> int:
    with Session(engine) as session:
        return session.get(User, user_id).total_score


# ---------------------------------------------------------------------------
# submit_rating
# ---------------------------------------------------------------------------
class TestSubmitRating:
    def test_first_rating_rescores_prompt_and_author(self, engine):
        result = scoring_service.submit_rating(
            engine, prompt_id="p1", rater_id="rater-1", value=5, now=NOW,
        )
        # rating 100 * 0.6 = 60 → 24, recency 20 - 5 = 15 → 3
        assert result.breakdown.rating.score == 60
        assert result.new_score == 27
        assert result.old_score == 0
        assert result.user_total == 27
        assert _score(engine, "p1") == 27
        assert _total(engine, "author") == 27

    def test_resubmission_replaces_rating(self, engine):
        scoring_service.submit_rating(engine, prompt_id="p1", rater_id="rater-1", value=5, now=NOW)
        result = scoring_service.submit_rating(
            engine, prompt_id="p1", rater_id="rater-1", value=1, now=NOW,
        )
        assert result.new_score == 3
        with Session(engine) as session:
            count = session.scalar(select(func.count()).select_from(PromptRating))
        assert count == 1

    def test_ratings_from_several_raters_average(self, engine):
        scoring_service.submit_rating(engine, prompt_id="p1", rater_id="rater-1", value=5, now=NOW)
        result = scoring_service.submit_rating(
            engine, prompt_id="p1", rater_id="rater-2", value=3, now=NOW,
        )
        # avg 4 → 75 * 0.6 = 45 → 18, plus recency 3
        assert result.breakdown.rating.score == 45
        assert result.new_score == 21

    @pytest.mark.parametrize("value", [0, 6, -1, 3.5, True, "4"])
    def test_invalid_values_rejected(self, engine, value):
        with pytest.raises(InvalidInputError):
            scoring_service.submit_rating(
                engine, prompt_id="p1", rater_id="rater-1", value=value, now=NOW,
            )
        assert _score(engine, "p1") == 0

    def test_unknown_prompt(self, engine):
        with pytest.raises(ValueError, match="Prompt not found"):
            scoring_service.submit_rating(
                engine, prompt_id="missing", rater_id="rater-1", value=4, now=NOW,
            )


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------
class TestCascade:
    def test_unchanged_score_skips_user_stage(self, engine):
        first = scoring_service.handle_rating_change(engine, "p1", now=NOW)
        assert first.changed
        assert first.user_total == 3

        # Corrupt the stored total: an unchanged prompt must not touch it.
        with Session(engine) as session:
            session.get(User, "author").total_score = 999
            session.commit()

        second = scoring_service.handle_rating_change(engine, "p1", now=NOW)
        assert not second.changed
        assert second.user_total is None
        assert _total(engine, "author") == 999

    def test_user_total_includes_badge_points_and_skips_inactive(self, engine):
        add_prompt(engine, "p2", "author", score=80, status="archived")
        with Session(engine) as session:
            session.add(UserBadge(user_id="author", badge_id="first-steps", earned_at=NOW))
            session.commit()

        scoring_service.handle_rating_change(engine, "p1", now=NOW)
        assert _total(engine, "author") == 3 + 10

    def test_category_multiplier_applied_when_enabled(self, db_engine):
        add_user(db_engine, "dev")
        add_user(db_engine, "rater")
        add_prompt(db_engine, "code", "dev", category_id="code-development")
        cfg = replace(DEFAULT_CONFIG, apply_category_multipliers=True)

        result = scoring_service.submit_rating(
            db_engine, prompt_id="code", rater_id="rater", value=5, config=cfg, now=NOW,
        )
        # 27 * 1.1 = 29.7
        assert result.breakdown.total_score == 27
        assert result.new_score == 30


# ---------------------------------------------------------------------------
# Facts
# ---------------------------------------------------------------------------
class TestPromptSignal:
    def test_engagement_counts_from_analytics(self, engine):
        with Session(engine) as session:
            for action, n in (
                (AnalyticsAction.FAVORITE, 2),
                (AnalyticsAction.SHARE, 1),
                (AnalyticsAction.VIEW, 5),
                (AnalyticsAction.COPY, 3),
            ):
                session.add_all(
                    UsageAnalytics(prompt_id="p1", user_id="rater-1", action=action, created_at=NOW)
                    for _ in range(n)
                )
            session.commit()

        with Session(engine) as session:
            signal = build_prompt_signal(session, "p1", now=NOW)
        assert signal.favorite_count == 2
        assert signal.share_count == 1
        assert signal.view_count == 5
        assert signal.comment_count == 0
        assert signal.days_since_created == pytest.approx(10.0)

    def test_unknown_prompt(self, engine):
        with Session(engine) as session, pytest.raises(ValueError):
            build_prompt_signal(session, "missing", now=NOW)


class TestUsageFromAnalytics:
    def _copies(self, engine, prompt_id: str, ages_in_days):
        with Session(engine) as session:
            session.add_all(
                UsageAnalytics(
                    prompt_id=prompt_id, user_id="rater-1", action=AnalyticsAction.COPY,
                    created_at=NOW - timedelta(days=age),
                )
                for age in ages_in_days
            )
            session.commit()

    def test_copy_events_count_as_usage(self, engine):
        self._copies(engine, "p1", [1 + i / 10 for i in range(40)])

        with Session(engine) as session:
            signal = build_prompt_signal(session, "p1", now=NOW)
        assert signal.usage_count == 40
        assert signal.last_used_days_ago == pytest.approx(1.0)

    def test_stored_column_wins_when_larger(self, engine):
        add_prompt(engine, "p2", "author", usage_count=50)
        self._copies(engine, "p2", [2, 3, 4])

        with Session(engine) as session:
            signal = build_prompt_signal(session, "p2", now=NOW)
        assert signal.usage_count == 50
        assert signal.last_used_days_ago == pytest.approx(2.0)

    def test_copies_change_the_score(self, engine):
        self._copies(engine, "p1", [0.5] * 40)
        result = scoring_service.handle_rating_change(engine, "p1", now=NOW)
        assert result.breakdown.usage.score > 0
        assert result.breakdown.recency.score == 20


class TestRecordUsage:
    def test_copy_bumps_prompt_and_rescores(self, engine):
        result = scoring_service.record_usage(
            engine, prompt_id="p1", user_id="rater-1", now=NOW,
        )
        # usage log10(2) * 15 + 0.1 * 5 ≈ 5.0; recency 15 + 10, capped at 20
        assert result.breakdown.usage.score == 5
        assert result.breakdown.recency.score == 20
        assert result.new_score == 6
        assert result.user_total == 6

        with Session(engine) as session:
            prompt = session.get(Prompt, "p1")
            assert prompt.usage_count == 1
            assert prompt.last_used_at is not None
            events = session.scalar(select(func.count()).select_from(UsageAnalytics))
        assert events == 1

        # Column and journal agree, so the use is not double counted.
        with Session(engine) as session:
            assert build_prompt_signal(session, "p1", now=NOW).usage_count == 1

    def test_favorite_feeds_engagement_only(self, engine):
        result = scoring_service.record_usage(
            engine, prompt_id="p1", action="favorite", user_id="rater-1", now=NOW,
        )
        assert result.breakdown.engagement.score == 3
        assert result.breakdown.usage.score == 0
        with Session(engine) as session:
            assert session.get(Prompt, "p1").usage_count == 0

    def test_unknown_action(self, engine):
        with pytest.raises(ValueError):
            scoring_service.record_usage(engine, prompt_id="p1", action="like", now=NOW)

    def test_unknown_prompt(self, engine):
        with pytest.raises(ValueError, match="Prompt not found"):
            scoring_service.record_usage(engine, prompt_id="missing", now=NOW)


# ---------------------------------------------------------------------------
# recompute_all
# ---------------------------------------------------------------------------
class TestRecomputeAll:
    def test_rescores_everything(self, engine):
        add_prompt(engine, "p2", "author", age_days=2, usage_count=20)
        add_user(engine, "other", total_score=50)

        changed = scoring_service.recompute_all(engine, now=NOW)

        assert changed == 2
        assert _score(engine, "p1") == 3
        p2 = _score(engine, "p2")
        assert p2 > 3
        assert _total(engine, "author") == 3 + p2
        # No prompts → total reset to badge points only.
        assert _total(engine, "other") == 0

    def test_second_pass_changes_nothing(self, engine):
        scoring_service.recompute_all(engine, now=NOW)
        assert scoring_service.recompute_all(engine, now=NOW) == 0

    def test_executor(self, engine):
        add_prompt(engine, "p2", "author", age_days=1, usage_count=7)
        with ThreadPoolExecutor(max_workers=2) as pool:
            scoring_service.recompute_all(engine, now=NOW, executor=pool)
        with_pool = (_score(engine, "p1"), _score(engine, "p2"))

        with Session(engine) as session:
            for prompt in session.scalars(select(Prompt)):
                prompt.score = 0
            session.commit()
        scoring_service.recompute_all(engine, now=NOW)
        assert (_score(engine, "p1"), _score(engine, "p2")) == with_pool
