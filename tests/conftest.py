"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from promptrank.database.models import Base
from promptrank.database.seed import seed_catalogue

# Fixed clock shared by time-dependent tests.
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all PromptRank tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` and executor-based batch scoring).
    Categories and badges are seeded.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_catalogue(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


# ---------------------------------------------------------------------------
# Row factories (usable from any test via ``from conftest import …``)
# ---------------------------------------------------------------------------
def add_user(engine: Engine, user_id: str, *, total_score: int = 0, is_active: bool = True) -> str:
    """Insert a user and commit.  Returns the id."""
    from promptrank.database.models import User

    with Session(engine) as session:
        session.add(User(
            id=user_id,
            username=f"user-{user_id}",
            total_score=total_score,
            is_active=is_active,
            created_at=NOW - timedelta(days=365),
        ))
        session.commit()
    return user_id


def add_prompt(
    engine: Engine,
    prompt_id: str,
    user_id: str,
    *,
    category_id: str = "writing-content",
    age_days: float = 10,
    score: int = 0,
    usage_count: int = 0,
    status: str = "active",
    is_public: bool = True,
    is_featured: bool = False,
    title: str | None = None,
) -> str:
    """Insert a prompt created *age_days* before :data:`NOW` and commit."""
    from promptrank.database.models import Prompt, PromptStatus

    with Session(engine) as session:
        session.add(Prompt(
            id=prompt_id,
            user_id=user_id,
            category_id=category_id,
            title=title or f"Prompt {prompt_id}",
            content="…",
            status=PromptStatus(status),
            is_public=is_public,
            is_featured=is_featured,
            score=score,
            usage_count=usage_count,
            created_at=NOW - timedelta(days=age_days),
        ))
        session.commit()
    return prompt_id
