"""Top-level entry points, one per stage plus the composed ``analyze``.

Each function takes an optional ``AppConfig``; omitting it uses the built-in
defaults. Load configuration once per run with ``load_config()`` and pass the
same object to every call.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from dealiq.config import AppConfig
from dealiq.models import (
    AnalysisOutcome,
    BuyerRecord,
    Classification,
    DealSummary,
    MAOSet,
    MarketSnapshot,
    MatchResult,
    PropertyRecord,
    ScoreSet,
    StrategyRecommendation,
    ValuationEstimate,
)
from dealiq.analysis.classifier import DealClassifier
from dealiq.analysis.engine import DealAnalyzer
from dealiq.analysis.offer import MAOCalculator
from dealiq.analysis.scoring import ScoringEngine
from dealiq.analysis.strategies import StrategyRecommender
from dealiq.analysis.valuation import ValuationEstimator
from dealiq.matching.buyers import BuyerMatcher


def estimate_valuation(
    record: PropertyRecord,
    market: MarketSnapshot | None = None,
    config: AppConfig | None = None,
) -> ValuationEstimate:
    cfg = config or AppConfig()
    return ValuationEstimator(cfg.valuation).estimate(record, market)


def calculate_mao(
    record: PropertyRecord,
    valuation: ValuationEstimate,
    config: AppConfig | None = None,
) -> MAOSet:
    cfg = config or AppConfig()
    return MAOCalculator(cfg.mao).calculate(record, valuation)


def score_deal(
    record: PropertyRecord,
    valuation: ValuationEstimate,
    mao: MAOSet,
    market: MarketSnapshot | None = None,
    config: AppConfig | None = None,
) -> ScoreSet:
    cfg = config or AppConfig()
    return ScoringEngine(cfg.scoring, cfg.mao).score(record, valuation, mao, market)


def classify_deal(
    scores: ScoreSet,
    mao: MAOSet,
    hot_signals: Sequence[str] = (),
    config: AppConfig | None = None,
) -> Classification:
    cfg = config or AppConfig()
    return DealClassifier(cfg.classifier).classify(scores, mao, hot_signals)


def recommend_strategies(
    record: PropertyRecord,
    valuation: ValuationEstimate,
    mao: MAOSet,
    scores: ScoreSet,
    config: AppConfig | None = None,
) -> StrategyRecommendation:
    cfg = config or AppConfig()
    return StrategyRecommender(cfg.strategies, cfg.mao).recommend(record, valuation, mao, scores)


def match_buyers(
    deal: DealSummary,
    buyers: Iterable[BuyerRecord],
    config: AppConfig | None = None,
) -> MatchResult:
    cfg = config or AppConfig()
    return BuyerMatcher(cfg.matching).match(deal, buyers)


def analyze(
    record: PropertyRecord,
    market: MarketSnapshot | None = None,
    buyers: Iterable[BuyerRecord] = (),
    config: AppConfig | None = None,
) -> AnalysisOutcome:
    """Run the whole pipeline and return ``{analysis, matches}``."""
    return DealAnalyzer(config or AppConfig()).analyze(record, market, buyers)
