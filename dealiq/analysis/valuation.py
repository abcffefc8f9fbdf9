"""After-repair value, repair cost and holding cost estimation.

This is a heuristic estimator, not a comparable-sales engine: confidence is
capped well below certainty and every path degrades to a formula when market
data is missing.
"""

from __future__ import annotations

import logging

from dealiq.config import ValuationConfig
from dealiq.models import (
    ArvSource,
    MarketSnapshot,
    PropertyRecord,
    RepairLine,
    RepairTier,
    ValuationEstimate,
)
from dealiq.analysis.finance import clamp, money

logger = logging.getLogger(__name__)


class ValuationEstimator:
    """Derives ARV, repair estimate and holding cost for a property."""

    def __init__(self, config: ValuationConfig):
        self.cfg = config

    def estimate(
        self,
        record: PropertyRecord,
        market: MarketSnapshot | None = None,
    ) -> ValuationEstimate:
        condition = self.condition_score(record)
        arv, source, confidence = self._estimate_arv(record, market, condition)
        tier = self.repair_tier(condition)
        repairs, breakdown = self._estimate_repairs(record, condition, tier)

        arv_per_sqft = round(arv / record.sqft, 2) if record.sqft else 0.0
        holding = money(record.asking_price * self.cfg.holding_cost_rate)

        logger.debug(
            "Valued %s: arv=%d (%s) repairs=%d tier=%s",
            record.id, arv, source.value, repairs, tier.value,
        )

        return ValuationEstimate(
            arv=arv,
            arv_per_sqft=arv_per_sqft,
            confidence=confidence,
            repair_estimate=repairs,
            repair_tier=tier,
            holding_cost_monthly=holding,
            condition_score=condition,
            arv_source=source,
            repair_breakdown=breakdown,
        )

    def condition_score(self, record: PropertyRecord) -> int:
        """Normalize the condition signal to 0-100 (100 = move-in ready)."""
        if record.condition_score is not None:
            return record.condition_score

        descriptor = record.condition.lower()
        if descriptor:
            # Longest keyword first so "needs work" wins over shorter overlaps
            for keyword in sorted(self.cfg.condition_keywords, key=lambda k: (-len(k), k)):
                if keyword in descriptor:
                    return self.cfg.condition_keywords[keyword]
        return self.cfg.default_condition_score

    def repair_tier(self, condition: int) -> RepairTier:
        if condition <= self.cfg.gut_max_condition:
            return RepairTier.GUT
        if condition <= self.cfg.heavy_max_condition:
            return RepairTier.HEAVY
        if condition <= self.cfg.moderate_max_condition:
            return RepairTier.MODERATE
        return RepairTier.LIGHT

    def _estimate_arv(
        self,
        record: PropertyRecord,
        market: MarketSnapshot | None,
        condition: int,
    ) -> tuple[int, ArvSource, int]:
        if record.known_arv:
            return money(record.known_arv), ArvSource.KNOWN, self.cfg.confidence_known

        baseline = self._market_price_per_sqft(market)
        if baseline and record.sqft > 0:
            span = self.cfg.condition_multiplier_max - self.cfg.condition_multiplier_min
            multiplier = self.cfg.condition_multiplier_min + span * clamp(condition) / 100
            arv = baseline * record.sqft * multiplier
            return money(arv), ArvSource.MARKET, self.cfg.confidence_market

        arv = record.asking_price * (1 + (1 - condition / 100) * self.cfg.fallback_uplift)
        return money(arv), ArvSource.FALLBACK, self.cfg.confidence_fallback

    def _market_price_per_sqft(self, market: MarketSnapshot | None) -> float:
        if market is None:
            return 0.0
        if market.price_per_sqft:
            return market.price_per_sqft
        if market.median_price:
            return market.median_price / (market.median_sqft or self.cfg.typical_sqft)
        return 0.0

    def _estimate_repairs(
        self,
        record: PropertyRecord,
        condition: int,
        tier: RepairTier,
    ) -> tuple[int, list[RepairLine]]:
        if record.known_repairs is not None:
            total = money(record.known_repairs)
            return total, [RepairLine(item="Contractor estimate", cost=total, note="supplied")]

        sqft = record.sqft or self.cfg.fallback_sqft
        rate = getattr(self.cfg.repair_cost_per_sqft, tier.value)
        base = money(sqft * rate)
        factor = self._age_factor(record.year_built)
        total = money(sqft * rate * factor)

        breakdown = [
            RepairLine(
                item="General rehab",
                cost=base,
                note=f"${rate:,.0f}/sqft x {sqft:,} sqft ({tier.value})",
            )
        ]
        if total != base:
            breakdown.append(
                RepairLine(
                    item="Age adjustment",
                    cost=total - base,
                    note=f"built {record.year_built} (x{factor:.2f})",
                )
            )
        return total, breakdown

    def _age_factor(self, year_built: int) -> float:
        if year_built <= 0:
            return 1.0
        age = self.cfg.reference_year - year_built
        for min_age, factor in sorted(self.cfg.age_factors, reverse=True):
            if age > min_age:
                return factor
        return 1.0
