"""Configuration management for DealIQ.

Every multiplier, threshold, fee and weight used by the engine lives here.
An ``AppConfig`` is loaded once per invocation or batch and is frozen, so it
can be handed to every stage without any stage being able to change it.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dealiq.models import RepairTier

CONFIG_DIR = Path(__file__).parent.parent / "config"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class RepairRates(_Frozen):
    """Base rehab cost in $/sqft for each repair tier."""

    light: float = 15.0
    moderate: float = 30.0
    heavy: float = 45.0
    gut: float = 65.0


class ValuationConfig(_Frozen):
    fallback_uplift: float = 0.30
    condition_multiplier_min: float = 0.85
    condition_multiplier_max: float = 1.10
    typical_sqft: int = 1500  # used when a market snapshot has no median sqft
    fallback_sqft: int = 1500  # used for repairs when the property has no sqft
    default_condition_score: int = 50
    condition_keywords: dict[str, int] = {
        "teardown": 5,
        "gut": 10,
        "distressed": 20,
        "needs work": 30,
        "poor": 30,
        "fair": 50,
        "average": 55,
        "good": 75,
        "updated": 85,
        "excellent": 90,
        "turnkey": 95,
    }
    # Condition-score upper bounds for each repair tier
    gut_max_condition: int = 20
    heavy_max_condition: int = 40
    moderate_max_condition: int = 60
    repair_cost_per_sqft: RepairRates = RepairRates()
    # (minimum age in years, multiplier); age must exceed the minimum
    age_factors: list[tuple[int, float]] = [(50, 1.30), (30, 1.15), (20, 1.05)]
    holding_cost_rate: float = 0.01  # monthly, fraction of asking price
    reference_year: int = 2025  # property age is measured against this year
    confidence_known: int = 80
    confidence_market: int = 70
    confidence_fallback: int = 60


class MAOConfig(_Frozen):
    wholesale_discount: float = 0.70
    assignment_fee: float = 10_000.0
    flip_discount: float = 0.75
    holding_months: int = 6
    refinance_ltv: float = 0.75
    rent_pct_of_arv: float = 0.008
    rental_expense_ratio: float = 0.45
    rental_target_cap_rate: float = 0.08
    # Used when the true mortgage balance is unknown
    assumed_balance_fraction: float = 0.80
    sub_to_discount: float = 0.85
    sub_to_closing_costs: float = 5_000.0
    sub_to_equity_payout: float = 0.25
    wrap_discount: float = 0.90
    wrap_closing_costs: float = 3_000.0
    wrap_equity_payout: float = 0.35
    jv_discount: float = 0.80
    jv_min_profit: float = 15_000.0


class ScoreWeights(_Frozen):
    equity: float
    market: float
    velocity: float
    motivation: float
    risk_penalty: float


WEIGHT_PRESETS: dict[str, ScoreWeights] = {
    "standard": ScoreWeights(
        equity=0.40, market=0.25, velocity=0.20, motivation=0.15, risk_penalty=0.20
    ),
    "conservative": ScoreWeights(
        equity=0.45, market=0.20, velocity=0.15, motivation=0.10, risk_penalty=0.35
    ),
    "aggressive": ScoreWeights(
        equity=0.35, market=0.25, velocity=0.20, motivation=0.20, risk_penalty=0.10
    ),
}


class RiskConfig(_Frozen):
    repair_points: dict[str, float] = {"light": 0, "moderate": 10, "heavy": 20, "gut": 30}
    equity_target_percent: float = 20.0
    equity_shortfall_max: float = 25.0
    illiquidity_threshold: float = 40.0
    illiquidity_max: float = 15.0
    slow_velocity_threshold: float = 40.0
    slow_velocity_max: float = 15.0
    property_type_points: dict[str, float] = {
        "mobile_home": 15,
        "land": 10,
        "commercial": 10,
        "multi_family": 5,
    }
    hazard_points: dict[str, float] = {
        "flood_zone": 10,
        "fire_damage": 15,
        "foundation": 15,
        "title_issues": 15,
        "mold": 10,
        "high_crime": 10,
        "code_violations": 10,
    }
    unknown_hazard_points: float = 5.0


class ScoringConfig(_Frozen):
    velocity_fast_days: int = 30
    velocity_moderate_days: int = 60
    velocity_slow_days: int = 120
    volume_low: float = 5.0  # sales per month
    volume_medium: float = 20.0
    volume_high: float = 50.0
    neutral_score: float = 50.0
    equity_full_marks_percent: float = 50.0
    selling_cost_pct: float = 0.08
    motivation_keywords: list[str] = [
        "divorce",
        "probate",
        "foreclosure",
        "inherited",
        "estate sale",
        "relocat",
        "job loss",
        "tax lien",
        "behind on payments",
        "tired landlord",
        "medical",
        "bankruptcy",
    ]
    keyword_motivation_floor: float = 70.0
    risk: RiskConfig = RiskConfig()
    preset: str = "standard"
    weights: Optional[ScoreWeights] = None  # overrides the preset when set

    @field_validator("preset")
    @classmethod
    def _known_preset(cls, value: str) -> str:
        if value not in WEIGHT_PRESETS:
            raise ValueError(
                f"Unknown weight preset {value!r}; choose one of {sorted(WEIGHT_PRESETS)}"
            )
        return value

    def resolved_weights(self) -> ScoreWeights:
        return self.weights or WEIGHT_PRESETS[self.preset]


class ClassThresholds(_Frozen):
    min_equity_percent: float
    min_margin_percent: float
    max_risk_score: float
    min_deal_score: float = 0.0


class HotSellerOverrideConfig(_Frozen):
    enabled: bool = True
    min_signals: int = 3
    long_listing_days: int = 90
    high_motivation: int = 8
    fast_response_hours: float = 24.0
    life_event_keywords: list[str] = [
        "divorce",
        "probate",
        "foreclosure",
        "inherited",
        "death",
        "relocat",
        "job loss",
        "bankruptcy",
    ]
    min_equity_percent: float = 15.0
    min_deal_score: float = 40.0


class ClassifierConfig(_Frozen):
    hot: ClassThresholds = ClassThresholds(
        min_equity_percent=30, min_margin_percent=15, max_risk_score=60
    )
    solid: ClassThresholds = ClassThresholds(
        min_equity_percent=20, min_margin_percent=10, max_risk_score=70
    )
    portfolio: ClassThresholds = ClassThresholds(
        min_equity_percent=10, min_margin_percent=0, max_risk_score=80
    )
    override: HotSellerOverrideConfig = HotSellerOverrideConfig()


class StrategyConfig(_Frozen):
    min_wholesale_spread: float = 5_000.0
    flip_min_profit: float = 25_000.0
    flip_max_repair_tier: RepairTier = RepairTier.HEAVY
    min_monthly_cashflow: float = 200.0
    brrrr_min_cashflow: float = 100.0
    brrrr_min_equity_percent: float = 20.0
    brrrr_rehab_months: int = 4
    down_payment_pct: float = 0.20
    interest_rate: float = 0.07
    loan_term_years: int = 30
    creative_finance_keywords: list[str] = [
        "behind on payments",
        "pre-foreclosure",
        "foreclosure",
        "divorce",
        "relocat",
        "job loss",
        "tired landlord",
        "inherited",
    ]
    sub_to_min_motivation: int = 7
    sub_to_max_balance_ratio: float = 0.85
    sub_to_interest_rate: float = 0.045  # assumed rate on the existing loan
    sub_to_remaining_years: int = 25
    wrap_sale_pct: float = 0.95
    wrap_down_payment_pct: float = 0.05
    wrap_interest_rate: float = 0.08
    wrap_min_monthly_spread: float = 150.0
    jv_min_repairs: float = 40_000.0
    jv_min_price: float = 250_000.0
    jv_min_profit: float = 20_000.0
    jv_profit_share: float = 0.50
    due_on_sale_high_ltv: float = 0.90
    loan_default_keywords: list[str] = ["behind on payments", "pre-foreclosure", "foreclosure"]
    annual_appreciation: float = 0.03
    projection_years: int = 5


class MatchWeights(_Frozen):
    geo: float = 30.0
    price: float = 25.0
    strategy: float = 20.0
    property_type: float = 15.0
    repair: float = 10.0


class MatchingConfig(_Frozen):
    weights: MatchWeights = MatchWeights()
    partial_geo_credit: float = 0.6
    geo_baseline_credit: float = 0.15
    zip_prefix_length: int = 3
    price_basis: Literal["arv", "asking", "recommended"] = "arv"
    price_tolerance_pct: float = 0.10
    near_price_credit: float = 0.5
    rating_bonus: dict[str, float] = {"A": 10, "B": 5, "C": 2, "D": 0}
    min_match_score: float = 50.0
    max_results: int = 3


class EnrichmentConfig(_Frozen):
    enabled: bool = False
    url: str = ""
    api_key: str = ""
    timeout_seconds: float = 10.0
    min_interval_seconds: float = 2.0  # delay between enrichment calls
    failure_threshold: int = 3
    cooldown_seconds: float = 300.0


class BatchConfig(_Frozen):
    lock_timeout_seconds: float = 5.0
    interval_minutes: int = 60
    save_results: bool = True


class DatabaseConfig(_Frozen):
    url: str = "sqlite:///dealiq.db"


class AppConfig(_Frozen):
    valuation: ValuationConfig = ValuationConfig()
    mao: MAOConfig = MAOConfig()
    scoring: ScoringConfig = ScoringConfig()
    classifier: ClassifierConfig = ClassifierConfig()
    strategies: StrategyConfig = StrategyConfig()
    matching: MatchingConfig = MatchingConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
    batch: BatchConfig = BatchConfig()
    database: DatabaseConfig = DatabaseConfig()


class EnvSettings(BaseSettings):
    """Environment overrides, e.g. ``DEALIQ_DATABASE_URL``."""

    model_config = SettingsConfigDict(env_prefix="DEALIQ_")

    config_path: Optional[Path] = None
    database_url: Optional[str] = None
    weight_preset: Optional[str] = None
    enrichment_url: Optional[str] = None
    enrichment_api_key: Optional[str] = None


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_overrides(env: EnvSettings) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if env.database_url:
        overrides["database"] = {"url": env.database_url}
    if env.weight_preset:
        overrides["scoring"] = {"preset": env.weight_preset}
    enrichment: dict[str, Any] = {}
    if env.enrichment_url:
        enrichment["url"] = env.enrichment_url
    if env.enrichment_api_key:
        enrichment["api_key"] = env.enrichment_api_key
    if enrichment:
        overrides["enrichment"] = enrichment
    return overrides


def load_config(config_path: Path | None = None, env: EnvSettings | None = None) -> AppConfig:
    """Load configuration from TOML files and the environment.

    Loads default.toml first, then merges local.toml (or a custom path, or
    ``DEALIQ_CONFIG_PATH``) on top, then applies ``DEALIQ_*`` overrides.
    """
    env = env or EnvSettings()
    default_path = CONFIG_DIR / "default.toml"
    data: dict[str, Any] = {}

    if default_path.exists():
        with open(default_path, "rb") as f:
            data = tomllib.load(f)

    local_path = config_path or env.config_path or CONFIG_DIR / "local.toml"
    if local_path.exists():
        with open(local_path, "rb") as f:
            overrides = tomllib.load(f)
        data = _deep_merge(data, overrides)

    data = _deep_merge(data, _env_overrides(env))
    return AppConfig(**data)
