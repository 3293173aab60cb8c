"""
tests/test_bootstrap.py — Engine Creation, Seeding and CLI Tests
=================================================================

Covers create_db_engine, init_db / seed_catalogue idempotency, the async
bridge, and the ``python -m promptrank`` entry point against a file-backed
SQLite database.
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import add_prompt, add_user
from promptrank.__main__ import main
from promptrank.database.engine import create_db_engine, get_session, init_db, run_db
from promptrank.database.models import Badge, Category, Prompt, User, UserBadge
from promptrank.database.seed import DEFAULT_CATEGORIES, seed_catalogue


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    """A file-backed SQLite URL; cwd moved so no stray config.yaml or .env is read."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    return f"sqlite:///{tmp_path / 'promptrank.db'}"


class TestEngine:
    def test_requires_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()

    def test_url_from_environment(self, monkeypatch, db_url):
        monkeypatch.setenv("DATABASE_URL", db_url)
        assert create_db_engine().url.drivername == "sqlite"

    def test_init_db_seeds_catalogue_once(self, db_url):
        engine = create_db_engine(db_url)
        init_db(engine)
        assert seed_catalogue(engine) == (0, 0)

        with Session(engine) as session:
            assert session.scalar(select(func.count()).select_from(Category)) == len(
                DEFAULT_CATEGORIES
            )
            assert session.scalar(select(func.count()).select_from(Badge)) == 15
            assert session.get(Badge, "crowd-favorite").points_reward == 200
            assert session.get(Badge, "dedicated").points_reward == 0

    def test_seed_keeps_admin_edits(self, db_engine):
        with Session(db_engine) as session:
            session.get(Badge, "first-steps").points_reward = 99
            session.commit()
        seed_catalogue(db_engine)
        with Session(db_engine) as session:
            assert session.get(Badge, "first-steps").points_reward == 99

    def test_get_session_rolls_back_on_error(self, db_engine):
        with pytest.raises(RuntimeError):
            with get_session(db_engine) as session:
                session.add(User(id="tmp", username="tmp"))
                raise RuntimeError("boom")
        with Session(db_engine) as session:
            assert session.get(User, "tmp") is None

    def test_run_db(self, db_engine):
        add_user(db_engine, "u1")

        def _count(engine):
            with Session(engine) as session:
                return session.scalar(select(func.count()).select_from(User))

        assert asyncio.run(run_db(_count, db_engine)) == 1


class TestCli:
    def test_leaderboard_global(self, db_url, capsys):
        engine = create_db_engine(db_url)
        init_db(engine)
        add_user(engine, "u1", total_score=40)
        add_user(engine, "u2", total_score=90)

        assert main(["--database-url", db_url, "leaderboard", "global"]) == 0

        out = capsys.readouterr().out
        assert "2 ranked" in out
        assert out.index("user-u2") < out.index("user-u1")

    def test_recompute(self, db_url):
        engine = create_db_engine(db_url)
        init_db(engine)
        add_user(engine, "u1")
        add_prompt(engine, "p1", "u1", usage_count=50)

        assert main(["--database-url", db_url, "recompute"]) == 0

        with Session(engine) as session:
            assert session.get(Prompt, "p1").score > 0
            assert session.get(UserBadge, ("u1", "first-steps")) is not None
            user = session.get(User, "u1")
            assert user.total_score == session.get(Prompt, "p1").score + 10

    def test_invalid_trending_window(self, db_url):
        assert main(["--database-url", db_url, "leaderboard", "trending", "--days", "0"]) == 2

    def test_missing_config_file(self, db_url, tmp_path):
        assert main(["--config", str(tmp_path / "nope.yaml"), "--database-url", db_url,
                     "recompute"]) == 1

    def test_config_file_used(self, db_url, tmp_path, capsys):
        (tmp_path / "config.yaml").write_text("leaderboard:\n  global_limit: 1\n")
        engine = create_db_engine(db_url)
        init_db(engine)
        add_user(engine, "u1", total_score=40)
        add_user(engine, "u2", total_score=90)

        assert main(["--database-url", db_url, "leaderboard", "global"]) == 0
        assert "1 ranked" in capsys.readouterr().out
