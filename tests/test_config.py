"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from dealiq.config import (
    WEIGHT_PRESETS,
    AppConfig,
    EnvSettings,
    ScoreWeights,
    ScoringConfig,
    load_config,
)


def test_load_default_config():
    cfg = load_config(env=EnvSettings())
    assert isinstance(cfg, AppConfig)
    assert cfg.mao.wholesale_discount == 0.70
    assert cfg.scoring.preset == "standard"


def test_config_has_all_sections():
    cfg = load_config(env=EnvSettings())
    assert cfg.valuation.fallback_uplift > 0
    assert cfg.valuation.repair_cost_per_sqft.gut > cfg.valuation.repair_cost_per_sqft.light
    assert cfg.classifier.hot.min_equity_percent > cfg.classifier.solid.min_equity_percent
    assert cfg.strategies.flip_min_profit > 0
    assert cfg.matching.min_match_score >= 0
    assert cfg.batch.lock_timeout_seconds > 0
    assert cfg.database.url


def test_toml_age_factors_parse_to_tuples():
    cfg = load_config(env=EnvSettings())
    assert cfg.valuation.age_factors[0] == (50, 1.30)


def test_config_deep_merge():
    from dealiq.config import _deep_merge

    base = {"a": {"b": 1, "c": 2}, "d": 3}
    override = {"a": {"b": 10}, "e": 5}
    result = _deep_merge(base, override)
    assert result == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}


def test_local_file_overrides_defaults(tmp_path):
    local = tmp_path / "local.toml"
    local.write_text('[mao]\nassignment_fee = 7500.0\n\n[scoring]\npreset = "conservative"\n')
    cfg = load_config(local, env=EnvSettings())
    assert cfg.mao.assignment_fee == 7500.0
    assert cfg.mao.wholesale_discount == 0.70
    assert cfg.scoring.resolved_weights() == WEIGHT_PRESETS["conservative"]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DEALIQ_DATABASE_URL", "sqlite:///override.db")
    monkeypatch.setenv("DEALIQ_WEIGHT_PRESET", "aggressive")
    cfg = load_config()
    assert cfg.database.url == "sqlite:///override.db"
    assert cfg.scoring.preset == "aggressive"


def test_config_is_frozen():
    cfg = AppConfig()
    with pytest.raises(ValidationError):
        cfg.mao.assignment_fee = 1.0


def test_unknown_preset_rejected():
    with pytest.raises(ValidationError):
        ScoringConfig(preset="yolo")


def test_custom_weights_override_preset():
    weights = ScoreWeights(equity=1.0, market=0, velocity=0, motivation=0, risk_penalty=0)
    cfg = ScoringConfig(preset="conservative", weights=weights)
    assert cfg.resolved_weights() is weights


def test_reference_year_is_pinned():
    cfg = load_config(env=EnvSettings())
    assert cfg.valuation.reference_year == 2025
    assert AppConfig().valuation.reference_year == 2025


def test_loaded_config_gives_repeatable_analysis():
    from dealiq.analysis.engine import DealAnalyzer
    from dealiq.models import PropertyRecord

    record = PropertyRecord(id="p-1", address="1 Main St", asking_price=90_000, sqft=1400, year_built=1975)
    first = DealAnalyzer(load_config(env=EnvSettings())).analyze(record)
    second = DealAnalyzer(load_config(env=EnvSettings())).analyze(record)
    assert first.model_dump_json() == second.model_dump_json()
    # 50 years old in 2025 falls in the 30-50 band
    lines = {line.item: line.note for line in first.analysis.valuation.repair_breakdown}
    assert "x1.15" in lines["Age adjustment"]


def test_flip_repair_tier_validated():
    from dealiq.config import StrategyConfig
    from dealiq.models import RepairTier

    assert StrategyConfig(flip_max_repair_tier="gut").flip_max_repair_tier == RepairTier.GUT
    with pytest.raises(ValidationError):
        StrategyConfig(flip_max_repair_tier="hevy")


def test_flip_repair_tier_typo_in_local_file(tmp_path):
    local = tmp_path / "local.toml"
    local.write_text('[strategies]\nflip_max_repair_tier = "hevy"\n')
    with pytest.raises(ValidationError):
        load_config(local, env=EnvSettings())
