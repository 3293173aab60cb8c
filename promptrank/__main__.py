"""
promptrank.__main__ — Entry point for ``python -m promptrank``
==============================================================

Wiring:
1. Load .env (DATABASE_URL).
2. Load config.yaml (scoring tunables), if one is given or present.
3. Create the SQLAlchemy engine, ensure tables exist and seed catalogues.
4. Run the requested subcommand.

Run with::

    python -m promptrank recompute
    python -m promptrank leaderboard global --limit 10
    python -m promptrank leaderboard category code-development
    python -m promptrank leaderboard trending --days 3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from promptrank.config import DEFAULT_CONFIG, ScoringConfig, load_config
from promptrank.database.engine import create_db_engine, init_db
from promptrank.engine.errors import InvalidInputError
from promptrank.engine.leaderboard import LeaderboardPage
from promptrank.services.badge_service import award_all_badges
from promptrank.services.leaderboard_service import (
    get_category_leaderboard,
    get_global_leaderboard,
    get_trending_prompts,
)
from promptrank.services.scoring_service import recompute_all

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("promptrank")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptrank", description="Prompt scoring, badges and leaderboards.",
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Path to config.yaml (default: ./config.yaml if it exists)",
    )
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("recompute", help="Rescore every prompt, refresh totals, award badges")

    board = sub.add_parser("leaderboard", help="Print a leaderboard")
    kinds = board.add_subparsers(dest="board", required=True)

    for name in ("global", "category", "trending"):
        p = kinds.add_parser(name)
        if name == "category":
            p.add_argument("category_id")
        if name == "trending":
            p.add_argument("--days", type=int, default=None)
        p.add_argument("--limit", type=int, default=None)
        p.add_argument("--page", type=int, default=1)
        p.add_argument("--page-size", type=int, default=20)
    return parser


def _resolve_config(path: Path | None) -> ScoringConfig:
    if path is not None:
        return load_config(path)
    if Path("config.yaml").exists():
        return load_config()
    return DEFAULT_CONFIG


def _print_page(page: LeaderboardPage) -> None:
    print(f"{page.total} ranked · page {page.page} (size {page.page_size})")
    for entry in page.entries:
        keys = "  ".join(f"{k}={v}" for k, v in entry.sort_keys.items())
        print(f"{entry.rank:>4}. {entry.display_name:<30} {keys}")


def main(argv: list[str] | None = None) -> int:
    """Bootstrap and run one command.  Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    # 1. Environment variables.
    load_dotenv()

    # 2. Scoring configuration.
    try:
        cfg = _resolve_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        logger.critical("%s", exc)
        return 1

    # 3. Database.
    try:
        engine = create_db_engine(args.database_url)
    except RuntimeError as exc:
        logger.critical("%s", exc)
        return 1
    init_db(engine, cfg)

    # 4. Command.
    if args.command == "recompute":
        changed = recompute_all(engine, config=cfg)
        awarded = award_all_badges(engine, config=cfg)
        logger.info(
            "Recompute complete: %d scores changed, %d badges granted to %d users",
            changed, sum(len(g) for g in awarded.values()), len(awarded),
        )
        return 0

    try:
        with Session(engine) as session:
            if args.board == "global":
                page = get_global_leaderboard(
                    session, page=args.page, page_size=args.page_size,
                    limit=args.limit, config=cfg,
                )
            elif args.board == "category":
                page = get_category_leaderboard(
                    session, args.category_id, page=args.page,
                    page_size=args.page_size, limit=args.limit, config=cfg,
                )
            else:
                page = get_trending_prompts(
                    session, days=args.days, limit=args.limit, page=args.page,
                    page_size=args.page_size, config=cfg,
                )
    except InvalidInputError as exc:
        logger.error("%s", exc)
        return 2

    _print_page(page)
    return 0


if __name__ == "__main__":
    sys.exit(main())
