"""Threshold-based deal classification.

Classification is a single-step, first-match-wins function:

    non-viable -> PASS
    HOT thresholds -> HOT
    hot-seller behavioral override -> HOT
    SOLID thresholds -> SOLID
    PORTFOLIO thresholds -> PORTFOLIO
    otherwise -> PASS

The override lets a seller showing enough behavioral hot signals jump to HOT
on a lower equity/score bar.
"""

from __future__ import annotations

from typing import Sequence

from dealiq.config import ClassifierConfig, ClassThresholds, HotSellerOverrideConfig
from dealiq.models import (
    Classification,
    DealClass,
    MAOSet,
    NextAction,
    PropertyRecord,
    ScoreSet,
)
from dealiq.analysis.finance import clamp

NEXT_ACTIONS = {
    DealClass.HOT: NextAction.MAKE_OFFER,
    DealClass.SOLID: NextAction.NEGOTIATE,
    DealClass.PORTFOLIO: NextAction.NURTURE,
    DealClass.PASS: NextAction.ARCHIVE,
}

_GRADES = [
    (90, "A+"), (85, "A"), (80, "A-"),
    (75, "B+"), (70, "B"), (65, "B-"),
    (60, "C+"), (55, "C"), (50, "C-"),
    (45, "D+"), (40, "D"),
]


def detect_hot_signals(record: PropertyRecord, config: HotSellerOverrideConfig) -> list[str]:
    """Return the behavioral hot-seller signals present on a record."""
    signals: list[str] = []
    if record.days_on_market >= config.long_listing_days:
        signals.append("long_listing")
    if record.motivation_score >= config.high_motivation:
        signals.append("high_motivation")
    if record.mentions(config.life_event_keywords):
        signals.append("life_event")
    if record.price_reduced:
        signals.append("price_reduction")
    if record.response_time_hours is not None and record.response_time_hours <= config.fast_response_hours:
        signals.append("fast_response")
    return signals


def grade_for(deal_score: float) -> str:
    for floor, grade in _GRADES:
        if deal_score >= floor:
            return grade
    return "F"


def success_probability(deal_score: float, risk_score: float) -> float:
    """Deal score pulls up, risk pulls down; clamped to 5-95%."""
    return round(clamp(deal_score * 0.7 + (100 - risk_score) * 0.3, 5, 95), 1)


class DealClassifier:
    """Maps scores, equity and risk onto HOT / SOLID / PORTFOLIO / PASS."""

    def __init__(self, config: ClassifierConfig):
        self.cfg = config

    def classify(
        self,
        scores: ScoreSet,
        mao: MAOSet,
        hot_signals: Sequence[str] = (),
    ) -> Classification:
        signals = sorted(set(hot_signals))

        if not mao.viable:
            return self._result(
                DealClass.PASS, "No strategy yields a positive offer", scores, signals
            )

        if self._meets(self.cfg.hot, scores):
            return self._result(
                DealClass.HOT,
                f"Equity {scores.equity_percent:.1f}% and margin {scores.margin_percent:.1f}% "
                f"clear HOT thresholds at risk {scores.risk_score:.0f}",
                scores,
                signals,
            )

        if self._override_applies(scores, signals):
            return self._result(
                DealClass.HOT,
                f"Hot seller override: {', '.join(signals)}",
                scores,
                signals,
                override=True,
            )

        if self._meets(self.cfg.solid, scores):
            return self._result(
                DealClass.SOLID,
                f"Equity {scores.equity_percent:.1f}% meets SOLID thresholds",
                scores,
                signals,
            )

        if self._meets(self.cfg.portfolio, scores):
            return self._result(
                DealClass.PORTFOLIO,
                f"Equity {scores.equity_percent:.1f}% fits a buy-and-hold portfolio",
                scores,
                signals,
            )

        return self._result(
            DealClass.PASS, self._pass_reason(scores), scores, signals
        )

    @staticmethod
    def _meets(th: ClassThresholds, scores: ScoreSet) -> bool:
        return (
            scores.equity_percent >= th.min_equity_percent
            and scores.margin_percent >= th.min_margin_percent
            and scores.risk_score <= th.max_risk_score
            and scores.deal_score >= th.min_deal_score
        )

    def _override_applies(self, scores: ScoreSet, signals: list[str]) -> bool:
        override = self.cfg.override
        return (
            override.enabled
            and len(signals) >= override.min_signals
            and scores.equity_percent >= override.min_equity_percent
            and scores.deal_score >= override.min_deal_score
        )

    def _pass_reason(self, scores: ScoreSet) -> str:
        floor = self.cfg.portfolio
        if scores.risk_score > floor.max_risk_score:
            return f"Risk {scores.risk_score:.0f} exceeds {floor.max_risk_score:.0f}"
        if scores.equity_percent < floor.min_equity_percent:
            return f"Equity {scores.equity_percent:.1f}% below {floor.min_equity_percent:.0f}%"
        if scores.margin_percent < floor.min_margin_percent:
            return f"Margin {scores.margin_percent:.1f}% below {floor.min_margin_percent:.0f}%"
        return f"Deal score {scores.deal_score:.0f} below {floor.min_deal_score:.0f}"

    @staticmethod
    def _result(
        deal_class: DealClass,
        reason: str,
        scores: ScoreSet,
        signals: list[str],
        override: bool = False,
    ) -> Classification:
        return Classification(
            deal_class=deal_class,
            reason=reason,
            next_action=NEXT_ACTIONS[deal_class],
            behavioral_override=override,
            hot_signals=signals,
            grade=grade_for(scores.deal_score),
            success_probability=success_probability(scores.deal_score, scores.risk_score),
        )
