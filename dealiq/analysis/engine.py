"""Main deal analysis engine that chains every stage for a property."""

from __future__ import annotations

import logging
from typing import Iterable

from dealiq.config import AppConfig
from dealiq.errors import InvalidPropertyError
from dealiq.models import (
    AnalysisOutcome,
    ArvSource,
    BalanceSource,
    BuyerRecord,
    DealAnalysis,
    DealSummary,
    MarketSnapshot,
    MatchResult,
    Occupancy,
    PropertyRecord,
    PropertyType,
    RepairTier,
    StrategyRecommendation,
)
from dealiq.analysis.classifier import DealClassifier, detect_hot_signals
from dealiq.analysis.offer import MAOCalculator
from dealiq.analysis.projection import HOLD_STRATEGIES, HoldingPeriodAnalyzer
from dealiq.analysis.scoring import ScoringEngine
from dealiq.analysis.strategies import StrategyRecommender
from dealiq.analysis.valuation import ValuationEstimator
from dealiq.matching.buyers import BuyerMatcher

logger = logging.getLogger(__name__)

ENGINE_VERSION = "1.0"


def ensure_valid(record: PropertyRecord) -> None:
    """Fail fast on records without identity or address."""
    if not isinstance(record, PropertyRecord):
        raise InvalidPropertyError(f"Expected PropertyRecord, got {type(record).__name__}")
    if not (record.id or "").strip():
        raise InvalidPropertyError("Property record has no id")
    if not (record.address or "").strip():
        raise InvalidPropertyError(f"Property {record.id} has no address", property_id=record.id)


class DealAnalyzer:
    """Runs valuation, offers, scoring, classification, strategy and matching."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.valuation = ValuationEstimator(config.valuation)
        self.offers = MAOCalculator(config.mao)
        self.scoring = ScoringEngine(config.scoring, config.mao)
        self.classifier = DealClassifier(config.classifier)
        self.strategies = StrategyRecommender(config.strategies, config.mao)
        self.holding = HoldingPeriodAnalyzer(config.strategies, config.mao)
        self.matcher = BuyerMatcher(config.matching)

    def analyze_property(
        self,
        record: PropertyRecord,
        market: MarketSnapshot | None = None,
    ) -> DealAnalysis:
        """Analyze a single property without buyer matching."""
        ensure_valid(record)

        valuation = self.valuation.estimate(record, market)
        mao = self.offers.calculate(record, valuation)
        scores = self.scoring.score(record, valuation, mao, market)
        signals = detect_hot_signals(record, self.config.classifier.override)
        classification = self.classifier.classify(scores, mao, signals)
        strategies = self.strategies.recommend(record, valuation, mao, scores)
        ranked_names = [c.name for c in strategies.ranked]
        due_on_sale = None
        if "sub_to" in ranked_names or "wrap" in ranked_names:
            due_on_sale = self.strategies.assess_due_on_sale(record, valuation, mao)
        hold = _hold_strategy(strategies)
        projection = self.holding.project(record, valuation, mao, hold) if hold else None

        analysis = DealAnalysis(
            property_id=record.id,
            address=record.full_address,
            engine_version=ENGINE_VERSION,
            weight_preset=self.config.scoring.preset if self.config.scoring.weights is None else "custom",
            valuation=valuation,
            mao=mao,
            scores=scores,
            classification=classification,
            strategies=strategies,
            due_on_sale=due_on_sale,
            holding_projection=projection,
        )
        analysis.strengths = self._strengths(record, analysis)
        analysis.weaknesses = self._weaknesses(record, analysis)
        analysis.opportunities = self._opportunities(record, analysis)
        analysis.threats = self._threats(record, analysis)

        logger.info(
            "Analyzed %s: %s score=%.1f strategy=%s",
            record.id,
            classification.deal_class.value,
            scores.deal_score,
            strategies.primary.name,
        )
        return analysis

    def summarize(self, record: PropertyRecord, analysis: DealAnalysis) -> DealSummary:
        """Reduce an analysis to what buyer matching needs."""
        primary = analysis.strategies.primary.name
        return DealSummary(
            property_id=record.id,
            address=record.full_address,
            zip_code=record.zip_code,
            city=record.city,
            arv=analysis.valuation.arv,
            asking_price=int(record.asking_price),
            recommended_offer=analysis.mao.recommended,
            strategy=primary if primary != "PASS" else analysis.mao.recommended_strategy,
            property_type=record.property_type,
            repair_tier=analysis.valuation.repair_tier,
            deal_class=analysis.classification.deal_class,
        )

    def match_buyers(
        self,
        record: PropertyRecord,
        analysis: DealAnalysis,
        buyers: Iterable[BuyerRecord],
    ) -> MatchResult:
        return self.matcher.match(self.summarize(record, analysis), buyers)

    def analyze(
        self,
        record: PropertyRecord,
        market: MarketSnapshot | None = None,
        buyers: Iterable[BuyerRecord] = (),
    ) -> AnalysisOutcome:
        """Full pipeline: analysis plus a ranked buyer shortlist."""
        analysis = self.analyze_property(record, market)
        matches = self.match_buyers(record, analysis, buyers)
        return AnalysisOutcome(analysis=analysis, matches=matches)

    def _strengths(self, record: PropertyRecord, a: DealAnalysis) -> list[str]:
        strengths = []
        if a.scores.equity_percent >= self.config.classifier.hot.min_equity_percent:
            strengths.append("Strong equity position")
        if record.motivation_score >= self.config.classifier.override.high_motivation:
            strengths.append("Highly motivated seller")
        if record.days_on_market > self.config.scoring.velocity_moderate_days:
            strengths.append("Extended market time creates negotiation leverage")
        if a.scores.velocity_score >= 85:
            strengths.append("Fast-selling market")
        if a.scores.deal_score >= 70:
            strengths.append("Above-average deal metrics")
        return strengths

    def _weaknesses(self, record: PropertyRecord, a: DealAnalysis) -> list[str]:
        weaknesses = []
        if a.valuation.repair_tier in (RepairTier.HEAVY, RepairTier.GUT):
            weaknesses.append("Significant repairs needed")
        for flag in record.hazard_flags:
            weaknesses.append(f"Hazard: {flag}")
        if a.scores.risk_score > 50:
            weaknesses.append("Elevated overall risk profile")
        if a.valuation.arv_source == ArvSource.FALLBACK:
            weaknesses.append("ARV estimated without market data")
        if (
            a.mao.balance_source == BalanceSource.ASSUMED
            and a.strategies.primary.name in ("sub_to", "wrap")
        ):
            weaknesses.append("Mortgage balance assumed, verify before offering")
        return weaknesses

    def _opportunities(self, record: PropertyRecord, a: DealAnalysis) -> list[str]:
        opportunities = []
        names = [c.name for c in a.strategies.ranked]
        if record.property_type == PropertyType.MULTI_FAMILY:
            opportunities.append("Potential for unit conversion")
        if record.occupancy == Occupancy.VACANT:
            opportunities.append("Vacant, so work can start at closing")
        if record.price_reduced:
            opportunities.append("Recent price cut signals room to negotiate")
        if a.scores.market_volume_score >= 60:
            opportunities.append("Active market with steady sales volume")
        if "wholesale" in names:
            opportunities.append("Assignment fee opportunity")
        if "sub_to" in names or "wrap" in names:
            opportunities.append("Seller financing terms available")
        return opportunities

    def _threats(self, record: PropertyRecord, a: DealAnalysis) -> list[str]:
        threats = []
        if a.scores.market_volume_score < 30:
            threats.append("Thin sales volume in the area")
        if a.scores.velocity_score <= 35:
            threats.append("Slow-moving market lengthens the exit")
        if record.occupancy == Occupancy.TENANT_OCCUPIED:
            threats.append("Existing tenant may delay rehab or resale")
        if record.asking_price > max(a.mao.by_strategy().values()):
            threats.append("Asking price is above every strategy's offer")
        if a.due_on_sale is not None and a.due_on_sale.level != "low":
            threats.append(f"Due-on-sale risk is {a.due_on_sale.level}")
        return threats


def _hold_strategy(strategies: StrategyRecommendation) -> str | None:
    """Best-ranked buy-and-hold exit, if any is eligible."""
    for candidate in strategies.ranked:
        if candidate.name in HOLD_STRATEGIES:
            return candidate.name
    return None
