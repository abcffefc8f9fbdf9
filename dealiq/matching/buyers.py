"""Weighted buyer matching.

Each active buyer is scored against a classified deal on five weighted
factors (geography, price, strategy, property type, repair tolerance), a
rating bonus is added on top, and the total is clamped to 100.
"""

from __future__ import annotations

import logging
from typing import Iterable

from dealiq.config import MatchingConfig
from dealiq.models import BuyerMatch, BuyerRecord, DealSummary, MatchResult

logger = logging.getLogger(__name__)


def _norm(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


class BuyerMatcher:
    """Scores and ranks buyers for a deal."""

    def __init__(self, config: MatchingConfig):
        self.cfg = config

    def match(self, deal: DealSummary, buyers: Iterable[BuyerRecord]) -> MatchResult:
        registry = list(buyers)
        active = [b for b in registry if b.active]
        if not active:
            return MatchResult(property_id=deal.property_id, note="No active buyers in registry")

        qualified: list[BuyerMatch] = []
        for buyer in active:
            score, criteria = self.score_buyer(deal, buyer)
            if score >= self.cfg.min_match_score:
                qualified.append(
                    BuyerMatch(
                        buyer_id=buyer.id,
                        buyer_name=buyer.name,
                        score=score,
                        criteria_met=criteria,
                    )
                )

        qualified.sort(key=lambda m: (-m.score, m.buyer_id))
        logger.debug(
            "%s: %d of %d active buyers matched", deal.property_id, len(qualified), len(active)
        )

        if not qualified:
            return MatchResult(
                property_id=deal.property_id,
                note=f"No buyers scored at or above {self.cfg.min_match_score:g}",
            )

        top = qualified[: self.cfg.max_results]
        return MatchResult(
            property_id=deal.property_id,
            matches=top,
            best_buyer=top[0].buyer_id,
            matched_count=len(qualified),
        )

    def score_buyer(self, deal: DealSummary, buyer: BuyerRecord) -> tuple[float, list[str]]:
        """Return (score 0-100, criteria met) for one buyer."""
        w = self.cfg.weights
        criteria: list[str] = []

        geo, geo_label = self._geo_credit(deal, buyer)
        price, price_label = self._price_credit(deal, buyer)
        strategy, strategy_label = self._strategy_credit(deal, buyer)
        ptype, ptype_label = self._type_credit(deal, buyer)
        repair = 1.0 if buyer.max_repair_tier.rank >= deal.repair_tier.rank else 0.0

        for label in (geo_label, price_label, strategy_label, ptype_label):
            if label:
                criteria.append(label)
        if repair:
            criteria.append("repair")

        total = (
            w.geo * geo
            + w.price * price
            + w.strategy * strategy
            + w.property_type * ptype
            + w.repair * repair
        )

        bonus = self.cfg.rating_bonus.get(buyer.rating.value, 0)
        if bonus > 0:
            criteria.append(f"rating:{buyer.rating.value}")
        return round(min(100.0, max(0.0, total + bonus)), 1), criteria

    def _geo_credit(self, deal: DealSummary, buyer: BuyerRecord) -> tuple[float, str]:
        zips = {z.strip() for z in buyer.zip_codes}
        cities = {c.strip().lower() for c in buyer.cities}
        if deal.zip_code and deal.zip_code in zips:
            return 1.0, "zip"

        n = self.cfg.zip_prefix_length
        same_city = bool(deal.city) and deal.city.strip().lower() in cities
        nearby_zip = bool(deal.zip_code) and any(
            len(z) >= n and z[:n] == deal.zip_code[:n] for z in zips
        )
        if same_city or nearby_zip:
            return self.cfg.partial_geo_credit, "area"
        if not zips and not cities:
            return self.cfg.partial_geo_credit, "area:any"
        # Low but non-zero so near misses can still surface
        return self.cfg.geo_baseline_credit, ""

    def _price_credit(self, deal: DealSummary, buyer: BuyerRecord) -> tuple[float, str]:
        if self.cfg.price_basis == "asking":
            price = deal.asking_price
        elif self.cfg.price_basis == "recommended":
            price = deal.recommended_offer
        else:
            price = deal.arv
        if price <= 0:
            return 0.0, ""

        low = buyer.min_price
        high = buyer.max_price if buyer.max_price is not None else float("inf")
        if low <= price <= high:
            return 1.0, "price"

        tol = self.cfg.price_tolerance_pct
        if low * (1 - tol) <= price <= high * (1 + tol):
            return self.cfg.near_price_credit, "price:near"
        return 0.0, ""

    @staticmethod
    def _strategy_credit(deal: DealSummary, buyer: BuyerRecord) -> tuple[float, str]:
        if not buyer.strategies:
            return 1.0, "strategy:any"
        wanted = _norm(deal.strategy)
        if not wanted:
            return 0.0, ""
        for pref in buyer.strategies:
            p = _norm(pref)
            if p and (p == wanted or p in wanted or wanted in p):
                return 1.0, "strategy"
        return 0.0, ""

    @staticmethod
    def _type_credit(deal: DealSummary, buyer: BuyerRecord) -> tuple[float, str]:
        if not buyer.property_types:
            return 1.0, "property_type:any"
        if deal.property_type.value in {_norm(t) for t in buyer.property_types}:
            return 1.0, "property_type"
        return 0.0, ""
