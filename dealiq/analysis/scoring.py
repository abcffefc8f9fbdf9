"""Market, velocity, equity, risk and composite deal scoring.

Every bounded score in the result is on a 0-100 scale. Risk is "higher is
worse"; the composite deal score subtracts a weighted risk penalty.
"""

from __future__ import annotations

from dealiq.config import MAOConfig, ScoringConfig
from dealiq.models import (
    MAOSet,
    MarketSnapshot,
    PropertyRecord,
    RiskFactor,
    ScoreSet,
    ValuationEstimate,
)
from dealiq.analysis.finance import clamp, money, ramp


class ScoringEngine:
    """Computes the ScoreSet for a valued property."""

    def __init__(self, config: ScoringConfig, mao_config: MAOConfig):
        self.cfg = config
        self.mao_cfg = mao_config

    def score(
        self,
        record: PropertyRecord,
        valuation: ValuationEstimate,
        mao: MAOSet,
        market: MarketSnapshot | None = None,
    ) -> ScoreSet:
        velocity = self.velocity_score(self._days_on_market(record, market))
        volume = self.market_volume_score(market.sales_per_month if market else None)
        equity = self.equity_percent(valuation.arv, record.asking_price, valuation.repair_estimate)
        profit, margin = self._profit_and_margin(record, valuation)
        motivation = self.motivation_score(record)
        factors = self._risk_factors(record, valuation, equity, volume, velocity)
        risk = round(clamp(sum(f.points for f in factors)), 1)
        deal = self.deal_score(equity, volume, velocity, motivation, risk)

        return ScoreSet(
            market_volume_score=round(volume, 1),
            velocity_score=round(velocity, 1),
            motivation_score=round(motivation, 1),
            equity_percent=equity,
            margin_percent=margin,
            profit_estimate=profit,
            risk_score=risk,
            deal_score=deal,
            risk_factors=factors,
        )

    def velocity_score(self, days_on_market: float | None) -> float:
        """Continuous ramp within fast / moderate / slow / stale bands."""
        if days_on_market is None:
            return self.cfg.neutral_score
        fast = self.cfg.velocity_fast_days
        moderate = self.cfg.velocity_moderate_days
        slow = self.cfg.velocity_slow_days
        dom = days_on_market

        if dom <= fast:
            return ramp(dom, 0, fast, 100, 85)
        if dom <= moderate:
            return ramp(dom, fast, moderate, 85, 65)
        if dom <= slow:
            return ramp(dom, moderate, slow, 65, 35)
        return ramp(dom, slow, slow * 2, 35, 10)

    def market_volume_score(self, sales_per_month: float | None) -> float:
        if sales_per_month is None:
            return self.cfg.neutral_score
        low, medium, high = self.cfg.volume_low, self.cfg.volume_medium, self.cfg.volume_high
        spm = sales_per_month

        if spm >= high:
            return ramp(spm, high, high * 2, 90, 100)
        if spm >= medium:
            return ramp(spm, medium, high, 60, 90)
        if spm >= low:
            return ramp(spm, low, medium, 30, 60)
        return ramp(spm, 0, low, 0, 30)

    @staticmethod
    def equity_percent(arv: float, asking_price: float, repairs: float) -> float:
        if arv <= 0:
            return 0.0
        return round((arv - asking_price - repairs) / arv * 100, 1)

    def motivation_score(self, record: PropertyRecord) -> float:
        score = record.motivation_score * 10.0
        if record.mentions(self.cfg.motivation_keywords):
            score = max(score, self.cfg.keyword_motivation_floor)
        return clamp(score)

    def deal_score(
        self,
        equity_percent: float,
        market_volume: float,
        velocity: float,
        motivation: float,
        risk: float,
    ) -> float:
        w = self.cfg.resolved_weights()
        equity_component = clamp(equity_percent / self.cfg.equity_full_marks_percent * 100)
        total = (
            w.equity * equity_component
            + w.market * market_volume
            + w.velocity * velocity
            + w.motivation * motivation
            - w.risk_penalty * risk
        )
        return round(clamp(total), 1)

    def _days_on_market(
        self, record: PropertyRecord, market: MarketSnapshot | None
    ) -> float | None:
        if market is not None and market.median_days_on_market is not None:
            return market.median_days_on_market
        if record.days_on_market > 0:
            return float(record.days_on_market)
        return None

    def _profit_and_margin(
        self, record: PropertyRecord, valuation: ValuationEstimate
    ) -> tuple[int, float]:
        """Net profit at asking after repairs, holding and selling costs."""
        arv = valuation.arv
        if arv <= 0:
            return 0, 0.0
        holding = valuation.holding_cost_monthly * self.mao_cfg.holding_months
        selling = arv * self.cfg.selling_cost_pct
        profit = arv - record.asking_price - valuation.repair_estimate - holding - selling
        return money(profit), round(profit / arv * 100, 1)

    def _risk_factors(
        self,
        record: PropertyRecord,
        valuation: ValuationEstimate,
        equity: float,
        volume: float,
        velocity: float,
    ) -> list[RiskFactor]:
        risk = self.cfg.risk
        factors: list[RiskFactor] = []

        def add(name: str, points: float) -> None:
            if points > 0:
                factors.append(RiskFactor(name=name, points=round(points, 1)))

        tier = valuation.repair_tier.value
        add(f"repairs_{tier}", risk.repair_points.get(tier, 0))

        if equity < risk.equity_target_percent:
            add("equity_shortfall", min(risk.equity_shortfall_max, risk.equity_target_percent - equity))

        if volume < risk.illiquidity_threshold:
            add(
                "market_illiquidity",
                (risk.illiquidity_threshold - volume) / risk.illiquidity_threshold * risk.illiquidity_max,
            )

        if velocity < risk.slow_velocity_threshold:
            add(
                "slow_velocity",
                (risk.slow_velocity_threshold - velocity)
                / risk.slow_velocity_threshold
                * risk.slow_velocity_max,
            )

        add(f"type_{record.property_type.value}", risk.property_type_points.get(record.property_type.value, 0))

        for flag in record.hazard_flags:
            key = flag.strip().lower().replace(" ", "_").replace("-", "_")
            if key:
                add(f"hazard_{key}", risk.hazard_points.get(key, risk.unknown_hazard_points))

        return factors
