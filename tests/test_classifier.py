"""Tests for deal classification."""

import itertools

import pytest

from dealiq.config import ClassifierConfig, HotSellerOverrideConfig
from dealiq.models import DealClass, MAOSet, NextAction, PropertyRecord, ScoreSet
from dealiq.analysis.classifier import (
    DealClassifier,
    detect_hot_signals,
    grade_for,
    success_probability,
)


def _make_scores(**overrides) -> ScoreSet:
    defaults = {
        "market_volume_score": 50,
        "velocity_score": 50,
        "motivation_score": 50,
        "equity_percent": 45.0,
        "margin_percent": 20.0,
        "profit_estimate": 40_000,
        "risk_score": 30,
        "deal_score": 70,
    }
    defaults.update(overrides)
    return ScoreSet(**defaults)


VIABLE = MAOSet(wholesale=100_000, recommended=100_000, viable=True)


class TestDealClassifier:
    def setup_method(self):
        self.classifier = DealClassifier(ClassifierConfig())

    def test_hot(self):
        c = self.classifier.classify(_make_scores(), VIABLE)
        assert c.deal_class == DealClass.HOT
        assert c.next_action == NextAction.MAKE_OFFER
        assert not c.behavioral_override

    def test_hot_requires_low_risk(self):
        c = self.classifier.classify(_make_scores(risk_score=65), VIABLE)
        assert c.deal_class == DealClass.SOLID

    def test_solid(self):
        c = self.classifier.classify(_make_scores(equity_percent=25, margin_percent=12), VIABLE)
        assert c.deal_class == DealClass.SOLID
        assert c.next_action == NextAction.NEGOTIATE

    def test_portfolio(self):
        c = self.classifier.classify(
            _make_scores(equity_percent=12, margin_percent=2, risk_score=75), VIABLE
        )
        assert c.deal_class == DealClass.PORTFOLIO
        assert c.next_action == NextAction.NURTURE

    def test_pass_low_equity(self):
        c = self.classifier.classify(_make_scores(equity_percent=5), VIABLE)
        assert c.deal_class == DealClass.PASS
        assert c.next_action == NextAction.ARCHIVE
        assert "Equity" in c.reason

    def test_pass_high_risk(self):
        c = self.classifier.classify(_make_scores(risk_score=90), VIABLE)
        assert c.deal_class == DealClass.PASS
        assert c.reason.startswith("Risk")

    def test_non_viable_is_pass(self):
        c = self.classifier.classify(_make_scores(), MAOSet(viable=False))
        assert c.deal_class == DealClass.PASS
        assert c.next_action == NextAction.ARCHIVE

    def test_hot_seller_override(self):
        scores = _make_scores(equity_percent=18, margin_percent=5, risk_score=50, deal_score=45)
        signals = ["long_listing", "high_motivation", "life_event"]
        c = self.classifier.classify(scores, VIABLE, signals)
        assert c.deal_class == DealClass.HOT
        assert c.behavioral_override
        assert c.hot_signals == sorted(signals)

    def test_override_needs_enough_signals(self):
        scores = _make_scores(equity_percent=18, margin_percent=5, risk_score=50, deal_score=45)
        c = self.classifier.classify(scores, VIABLE, ["long_listing", "life_event"])
        assert c.deal_class == DealClass.PORTFOLIO
        assert not c.behavioral_override

    def test_override_can_be_disabled(self):
        cfg = ClassifierConfig(override=HotSellerOverrideConfig(enabled=False))
        scores = _make_scores(equity_percent=18, margin_percent=5, risk_score=50, deal_score=45)
        c = DealClassifier(cfg).classify(
            scores, VIABLE, ["long_listing", "high_motivation", "life_event"]
        )
        assert c.deal_class == DealClass.PORTFOLIO

    def test_total_over_inputs(self):
        grid = itertools.product(
            (-50, 0, 10, 20, 30, 80),
            (-20, 0, 10, 15, 40),
            (0, 60, 70, 80, 100),
            (0, 40, 100),
            (True, False),
        )
        for equity, margin, risk, deal, viable in grid:
            scores = _make_scores(
                equity_percent=equity, margin_percent=margin, risk_score=risk, deal_score=deal
            )
            c = self.classifier.classify(scores, MAOSet(viable=viable))
            assert c.deal_class in DealClass
            assert c.reason
            assert 5 <= c.success_probability <= 95


def test_detect_hot_signals():
    record = PropertyRecord(
        id="p-1",
        address="1 Main St",
        days_on_market=120,
        motivation_score=9,
        motivation_notes="Inherited the house, wants out",
        price_reduced=True,
        response_time_hours=2,
    )
    signals = detect_hot_signals(record, HotSellerOverrideConfig())
    assert signals == [
        "long_listing",
        "high_motivation",
        "life_event",
        "price_reduction",
        "fast_response",
    ]


def test_no_hot_signals_on_plain_record():
    record = PropertyRecord(id="p-1", address="1 Main St")
    assert detect_hot_signals(record, HotSellerOverrideConfig()) == []


@pytest.mark.parametrize(
    "score,grade",
    [(95, "A+"), (90, "A+"), (86, "A"), (72, "B"), (50, "C-"), (40, "D"), (39.9, "F"), (0, "F")],
)
def test_grade_for(score, grade):
    assert grade_for(score) == grade


def test_success_probability_bounds():
    assert success_probability(100, 0) == 95
    assert success_probability(0, 100) == 5
    assert success_probability(50, 50) == 50
