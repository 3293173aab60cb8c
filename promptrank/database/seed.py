"""
promptrank.database.seed — Default Catalogue Seeder
====================================================

Seeds the default prompt categories and the badge catalogue on first
startup.  Idempotent: only inserts rows that don't already exist, so admin
edits (renames, point changes) are never overwritten.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from promptrank.config import DEFAULT_CONFIG, ScoringConfig
from promptrank.database.models import Badge, Category
from promptrank.engine.badges import BADGE_REGISTRY, badge_points

logger = logging.getLogger(__name__)


# slug → (name, description)
DEFAULT_CATEGORIES: dict[str, tuple[str, str]] = {
    "writing-content": (
        "Writing & Content",
        "Prompts for creative writing, copywriting, and content creation",
    ),
    "code-development": (
        "Code & Development", "Programming and software development prompts",
    ),
    "business-marketing": (
        "Business & Marketing",
        "Business strategy, marketing, and entrepreneurship prompts",
    ),
    "education-learning": (
        "Education & Learning", "Educational content and learning assistance prompts",
    ),
    "creative-design": (
        "Creative & Design", "Design, art, and creative project prompts",
    ),
    "personal-lifestyle": (
        "Personal & Lifestyle", "Personal development and lifestyle prompts",
    ),
}


def seed_catalogue(
    engine: Engine, *, config: ScoringConfig = DEFAULT_CONFIG
) -> tuple[int, int]:
    """Insert missing categories and badges.

    Badge point rewards honour ``config.badge_points`` overrides.

    Returns (categories_inserted, badges_inserted).
    """
    with Session(engine) as session:
        existing_categories = set(session.scalars(select(Category.id)).all())
        existing_badges = set(session.scalars(select(Badge.id)).all())

        new_categories = 0
        for order, (slug, (name, description)) in enumerate(
            DEFAULT_CATEGORIES.items(), start=1
        ):
            if slug in existing_categories:
                continue
            session.add(Category(
                id=slug, name=name, description=description, sort_order=order,
            ))
            new_categories += 1

        new_badges = 0
        for badge in BADGE_REGISTRY:
            if badge.id in existing_badges:
                continue
            session.add(Badge(
                id=badge.id,
                name=badge.name,
                description=badge.description,
                badge_type=badge.type,
                points_reward=badge_points(badge.id, config=config),
            ))
            new_badges += 1

        session.commit()

    if new_categories or new_badges:
        logger.info(
            "Seeded %d categories and %d badges", new_categories, new_badges,
        )
    return new_categories, new_badges
