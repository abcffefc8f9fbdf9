"""Tests for the hold-period projection."""

import pytest

from dealiq.config import MAOConfig, StrategyConfig
from dealiq.models import (
    ArvSource,
    BalanceSource,
    MAOSet,
    PropertyRecord,
    RepairTier,
    ValuationEstimate,
)
from dealiq.analysis.finance import monthly_payment, principal_paid
from dealiq.analysis.projection import HoldingPeriodAnalyzer


def _make_record(**overrides) -> PropertyRecord:
    defaults = {
        "id": "p-1",
        "address": "100 Investor Blvd",
        "asking_price": 100_000,
        "sqft": 1400,
        "monthly_rent": 1_500,
    }
    defaults.update(overrides)
    return PropertyRecord(**defaults)


def _make_valuation(arv: int = 150_000) -> ValuationEstimate:
    return ValuationEstimate(
        arv=arv,
        arv_per_sqft=arv / 1400,
        confidence=80,
        repair_estimate=10_000,
        repair_tier=RepairTier.LIGHT,
        holding_cost_monthly=1_000,
        condition_score=80,
        arv_source=ArvSource.KNOWN,
    )


def _remaining(principal, annual_rate, years, months):
    r = annual_rate / 12
    payment = monthly_payment(principal, annual_rate, years)
    return principal * (1 + r) ** months - payment * ((1 + r) ** months - 1) / r


class TestPrincipalPaid:
    def test_matches_amortization_formula(self):
        paid = principal_paid(80_000, 0.07, 30, 60)
        assert paid == pytest.approx(80_000 - _remaining(80_000, 0.07, 30, 60))

    def test_full_term_repays_loan(self):
        assert principal_paid(80_000, 0.07, 30, 360) == pytest.approx(80_000)
        assert principal_paid(80_000, 0.07, 30, 600) == pytest.approx(80_000)

    def test_no_loan(self):
        assert principal_paid(0, 0.07, 30, 60) == 0.0


class TestHoldingPeriodAnalyzer:
    def setup_method(self):
        self.analyzer = HoldingPeriodAnalyzer(StrategyConfig(), MAOConfig())

    def test_rental_projection(self):
        p = self.analyzer.project(_make_record(), _make_valuation(), MAOSet(), "rental")
        payment = monthly_payment(80_000, 0.07, 30)
        # 1500 rent less 45% expenses less the mortgage
        assert p.monthly_cashflow == round(825 - payment)
        assert p.cashflow == pytest.approx((825 - payment) * 60, abs=1)
        # 150000 x (1.03^5 - 1)
        assert p.appreciation == 23_891
        assert p.principal_paydown == pytest.approx(80_000 - _remaining(80_000, 0.07, 30, 60), abs=1)
        assert p.total_return == pytest.approx(p.cashflow + p.appreciation + p.principal_paydown, abs=2)
        assert p.years == 5
        assert p.strategy == "rental"

    def test_sub_to_pays_down_existing_loan(self):
        mao = MAOSet(mortgage_balance=100_000, balance_source=BalanceSource.KNOWN)
        p = self.analyzer.project(_make_record(), _make_valuation(), mao, "sub_to")
        expected = 100_000 - _remaining(100_000, 0.045, 25, 60)
        assert p.principal_paydown == pytest.approx(expected, abs=1)
        assert p.monthly_cashflow == round(825 - monthly_payment(100_000, 0.045, 25))

    def test_wrap_cashflow_is_note_spread(self):
        mao = MAOSet(mortgage_balance=100_000, balance_source=BalanceSource.KNOWN)
        p = self.analyzer.project(_make_record(), _make_valuation(), mao, "wrap")
        note = 150_000 * 0.95 * 0.95
        spread = monthly_payment(note, 0.08, 30) - monthly_payment(100_000, 0.045, 25)
        assert p.monthly_cashflow == round(spread)

    def test_exit_at_sale_strategies_not_projected(self):
        for name in ("wholesale", "flip", "jv", "PASS"):
            assert self.analyzer.project(_make_record(), _make_valuation(), MAOSet(), name) is None

    def test_zero_arv(self):
        assert self.analyzer.project(_make_record(), _make_valuation(arv=0), MAOSet(), "rental") is None

    def test_projection_years_configurable(self):
        analyzer = HoldingPeriodAnalyzer(StrategyConfig(projection_years=10), MAOConfig())
        p = analyzer.project(_make_record(), _make_valuation(), MAOSet(), "brrrr")
        assert p.years == 10
        assert p.appreciation == round(150_000 * (1.03 ** 10 - 1))
