"""
tests/test_config.py — YAML Configuration Loader Tests
=======================================================
"""

from __future__ import annotations

import pickle
import textwrap
from types import MappingProxyType

import pytest

from promptrank.config import DEFAULT_CONFIG, ScoringConfig, config_from_dict, load_config


def _write(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "config.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_config(_write(tmp_path, "")) == DEFAULT_CONFIG

    def test_overrides(self, tmp_path):
        cfg = load_config(_write(tmp_path, """
            weights:
              rating: 0.5
            max_scores:
              usage: 40
            top_ranked_threshold: 120
            apply_category_multipliers: true
            leaderboard:
              trending_days: 3
            badge_points:
              consistent: 15
        """))
        assert cfg.rating_weight == 0.5
        assert cfg.usage_weight == DEFAULT_CONFIG.usage_weight
        assert cfg.max_usage_score == 40
        assert cfg.top_ranked_threshold == 120
        assert cfg.apply_category_multipliers is True
        assert cfg.trending_days == 3
        assert cfg.badge_points["consistent"] == 15

    def test_category_multipliers_merge(self, tmp_path):
        cfg = load_config(_write(tmp_path, """
            category_multipliers:
              code-development: 1.2
              data-science: 1.15
        """))
        assert cfg.category_multipliers["code-development"] == 1.2
        assert cfg.category_multipliers["data-science"] == 1.15
        assert cfg.category_multipliers["education-learning"] == 1.05

    def test_mappings_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_CONFIG.category_multipliers["code-development"] = 2.0  # type: ignore[index]


class TestValidation:
    @pytest.mark.parametrize(
        "raw",
        [
            {"weights": {"rating": -0.1}},
            {"weights": {"usage": float("nan")}},
            {"category_multipliers": {"code-development": float("inf")}},
            {"total_score": {"min": 10, "max": 5}},
            {"leaderboard": {"trending_days": 0}},
            {"confidence_tiers": {5: 0.8}},
        ],
    )
    def test_rejected(self, raw):
        with pytest.raises(ValueError):
            config_from_dict(raw)

    def test_confidence_tiers_sorted(self):
        cfg = config_from_dict({"confidence_tiers": {0: 0.5, 10: 1.0}})
        assert cfg.confidence_tiers == ((10, 1.0), (0, 0.5))


class TestPickling:
    def test_round_trip_keeps_overrides(self):
        cfg = config_from_dict({
            "category_multipliers": {"data-science": 1.2},
            "badge_points": {"consistent": 15},
        })
        restored = pickle.loads(pickle.dumps(cfg))
        assert restored == cfg
        assert restored.category_multipliers["data-science"] == 1.2
        assert isinstance(restored.badge_points, MappingProxyType)

    def test_default_config_round_trip(self):
        assert pickle.loads(pickle.dumps(DEFAULT_CONFIG)) == DEFAULT_CONFIG

    def test_plain_dicts_wrapped_read_only(self):
        cfg = ScoringConfig(badge_points={"consistent": 3})
        with pytest.raises(TypeError):
            cfg.badge_points["consistent"] = 4  # type: ignore[index]
