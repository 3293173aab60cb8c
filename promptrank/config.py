"""
promptrank.config — YAML Configuration Loader
==============================================

Reads ``config.yaml`` for the scoring tunables: component weights and caps,
the rating confidence tiers, per-category multipliers, the "top ranked"
threshold, leaderboard defaults and badge point overrides.  Every key is
optional; anything omitted keeps the value from :data:`DEFAULT_CONFIG`.

Infrastructure settings (``DATABASE_URL``) come from the environment, not
from this file.

Usage::

    from promptrank.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.rating_weight)         # 0.4
    print(cfg.category_multipliers["code-development"])   # 1.1
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from types import MappingProxyType

import yaml

# ---------------------------------------------------------------------------
# Defaults (single source of truth)
# ---------------------------------------------------------------------------
# (minimum rating_count, multiplier), highest tier first
DEFAULT_CONFIDENCE_TIERS: tuple[tuple[int, float], ...] = (
    (50, 1.0),
    (25, 0.95),
    (10, 0.9),
    (5, 0.8),
    (3, 0.7),
    (0, 0.6),
)

DEFAULT_CATEGORY_MULTIPLIERS: dict[str, float] = {
    "writing-content": 1.0,
    "code-development": 1.1,
    "business-marketing": 1.0,
    "education-learning": 1.05,
    "creative-design": 1.0,
    "personal-lifestyle": 0.95,
}


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ScoringConfig:
    """Immutable scoring configuration.

    Engines take this as a keyword argument; there is no global mutable
    state.  Mapping fields are read-only proxies.
    """

    # Component weights
    rating_weight: float = 0.4
    usage_weight: float = 0.3
    recency_weight: float = 0.2
    engagement_weight: float = 0.1

    # Component caps
    max_rating_score: int = 100
    max_usage_score: int = 50
    max_recency_score: int = 20
    max_engagement_score: int = 30

    # Total score bounds
    min_total_score: int = 0
    max_total_score: int = 200

    confidence_tiers: tuple[tuple[int, float], ...] = DEFAULT_CONFIDENCE_TIERS
    category_multipliers: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_CATEGORY_MULTIPLIERS))
    )
    # Scale persisted prompt scores by their category multiplier
    apply_category_multipliers: bool = False

    # Prompts scoring at or above this count toward "community-favorite"
    top_ranked_threshold: int = 150

    # Leaderboard defaults
    global_limit: int = 100
    category_limit: int = 50
    trending_days: int = 7
    trending_limit: int = 20

    # badge id → points reward, overriding the catalogue value
    badge_points: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        for name in _MAPPING_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    def __reduce__(self):
        # mappingproxy can't be pickled; ship plain dicts to worker processes.
        state = {f.name: getattr(self, f.name) for f in fields(self)}
        for name in _MAPPING_FIELDS:
            state[name] = dict(state[name])
        return (_restore_config, (state,))


_MAPPING_FIELDS = ("category_multipliers", "badge_points")


def _restore_config(state: dict) -> ScoringConfig:
    return ScoringConfig(**state)


DEFAULT_CONFIG = ScoringConfig()


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _non_negative_float(value: object, key: str) -> float:
    number = float(value)  # type: ignore[arg-type]
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"{key} must be a finite, non-negative number (got {value!r})")
    return number


def _non_negative_int(value: object, key: str) -> int:
    number = int(value)  # type: ignore[call-overload]
    if number < 0:
        raise ValueError(f"{key} must be non-negative (got {value!r})")
    return number


def _parse_tiers(raw: Mapping) -> tuple[tuple[int, float], ...]:
    tiers = sorted(
        (
            (_non_negative_int(k, "confidence_tiers key"),
             _non_negative_float(v, f"confidence_tiers[{k}]"))
            for k, v in raw.items()
        ),
        reverse=True,
    )
    if not tiers or tiers[-1][0] != 0:
        raise ValueError("confidence_tiers must include a tier starting at 0 ratings")
    return tuple(tiers)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def config_from_dict(raw: Mapping | None) -> ScoringConfig:
    """Build a :class:`ScoringConfig` from a parsed YAML mapping.

    Raises
    ------
    ValueError
        If a weight, multiplier, cap or limit is negative or non-finite.
    """
    raw = raw or {}
    overrides: dict[str, object] = {}

    weights = raw.get("weights") or {}
    for name in ("rating", "usage", "recency", "engagement"):
        if name in weights:
            overrides[f"{name}_weight"] = _non_negative_float(
                weights[name], f"weights.{name}"
            )

    max_scores = raw.get("max_scores") or {}
    for name in ("rating", "usage", "recency", "engagement"):
        if name in max_scores:
            overrides[f"max_{name}_score"] = _non_negative_int(
                max_scores[name], f"max_scores.{name}"
            )

    total = raw.get("total_score") or {}
    if "min" in total:
        overrides["min_total_score"] = _non_negative_int(total["min"], "total_score.min")
    if "max" in total:
        overrides["max_total_score"] = _non_negative_int(total["max"], "total_score.max")

    if raw.get("confidence_tiers"):
        overrides["confidence_tiers"] = _parse_tiers(raw["confidence_tiers"])

    if raw.get("category_multipliers"):
        merged = dict(DEFAULT_CATEGORY_MULTIPLIERS)
        for slug, mult in raw["category_multipliers"].items():
            merged[str(slug)] = _non_negative_float(mult, f"category_multipliers.{slug}")
        overrides["category_multipliers"] = MappingProxyType(merged)

    if "apply_category_multipliers" in raw:
        overrides["apply_category_multipliers"] = bool(raw["apply_category_multipliers"])

    if "top_ranked_threshold" in raw:
        overrides["top_ranked_threshold"] = _non_negative_int(
            raw["top_ranked_threshold"], "top_ranked_threshold"
        )

    leaderboard = raw.get("leaderboard") or {}
    for key in ("global_limit", "category_limit", "trending_days", "trending_limit"):
        if key in leaderboard:
            overrides[key] = _non_negative_int(leaderboard[key], f"leaderboard.{key}")
    if overrides.get("trending_days") == 0:
        raise ValueError("leaderboard.trending_days must be at least 1")

    if raw.get("badge_points"):
        overrides["badge_points"] = MappingProxyType({
            str(badge_id): _non_negative_int(points, f"badge_points.{badge_id}")
            for badge_id, points in raw["badge_points"].items()
        })

    cfg = replace(DEFAULT_CONFIG, **overrides)
    if cfg.min_total_score > cfg.max_total_score:
        raise ValueError("total_score.min must not exceed total_score.max")
    return cfg


def load_config(path: str | Path = "config.yaml") -> ScoringConfig:
    """Read *path* and return a :class:`ScoringConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value fails validation.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict | None = yaml.safe_load(fh)

    return config_from_dict(raw)
