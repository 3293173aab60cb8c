"""
PromptRank — Scoring, Badges and Leaderboards for a Prompt Community
=====================================================================
Turns raw community activity (ratings, usage, engagement) into prompt
scores, user totals, badge grants and ranked leaderboards.  The engine is
pure calculation; the service layer wires it to the database.

Package layout::

    promptrank/
    ├── config.py          # YAML → typed ScoringConfig
    ├── __main__.py        # python -m promptrank (recompute / leaderboard)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # ORM models (users, prompts, ratings, badges…)
    │   └── seed.py        # Default categories + badge catalogue
    ├── engine/
    │   ├── errors.py      # InvalidInputError
    │   ├── signals.py     # Value types passed into the engine
    │   ├── scoring.py     # Prompt score + user total
    │   ├── badges.py      # Badge registry, eligibility, streaks
    │   └── leaderboard.py # Global / category / trending rankings
    └── services/
        ├── facts.py               # DB → engine value types
        ├── scoring_service.py     # Rating → prompt score → user total
        ├── badge_service.py       # Eligibility + grant persistence
        └── leaderboard_service.py # Snapshot + rank
"""

__version__ = "0.1.0"
