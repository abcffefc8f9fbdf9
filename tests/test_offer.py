"""Tests for the MAO calculator."""

from dealiq.config import MAOConfig
from dealiq.models import (
    STRATEGY_CATALOG,
    ArvSource,
    BalanceSource,
    PropertyRecord,
    RepairTier,
    ValuationEstimate,
)
from dealiq.analysis.offer import MAOCalculator


def _make_record(**overrides) -> PropertyRecord:
    defaults = {
        "id": "p-1",
        "address": "100 Investor Blvd",
        "asking_price": 90_000,
        "sqft": 1400,
    }
    defaults.update(overrides)
    return PropertyRecord(**defaults)


def _make_valuation(**overrides) -> ValuationEstimate:
    defaults = {
        "arv": 200_000,
        "arv_per_sqft": 142.86,
        "confidence": 80,
        "repair_estimate": 20_000,
        "repair_tier": RepairTier.MODERATE,
        "holding_cost_monthly": 900,
        "condition_score": 50,
        "arv_source": ArvSource.KNOWN,
    }
    defaults.update(overrides)
    return ValuationEstimate(**defaults)


class TestMAOCalculator:
    def setup_method(self):
        self.calc = MAOCalculator(MAOConfig())

    def test_wholesale_formula(self):
        mao = self.calc.calculate(_make_record(), _make_valuation())
        # 200000 x 0.70 - 20000 - 10000
        assert mao.wholesale == 110_000

    def test_flip_and_brrrr(self):
        mao = self.calc.calculate(_make_record(), _make_valuation())
        # 200000 x 0.75 - 20000 - 900 x 6
        assert mao.flip == 124_600
        assert mao.brrrr == 130_000
        assert mao.jv == 119_600

    def test_creative_finance_with_assumed_balance(self):
        mao = self.calc.calculate(_make_record(asking_price=125_000), _make_valuation())
        assert mao.balance_source == BalanceSource.ASSUMED
        assert mao.mortgage_balance == 100_000
        # balance + (170000 - 20000 - 5000 - balance) x 0.25
        assert mao.sub_to == 111_250
        assert mao.wrap == 119_950

    def test_known_balance(self):
        mao = self.calc.calculate(_make_record(mortgage_balance=50_000), _make_valuation())
        assert mao.balance_source == BalanceSource.KNOWN
        assert mao.mortgage_balance == 50_000

    def test_balance_above_ceiling_zeroes_creative(self):
        mao = self.calc.calculate(_make_record(mortgage_balance=190_000), _make_valuation())
        assert mao.sub_to == 0
        assert mao.wrap == 0

    def test_recommended_is_highest_below_asking(self):
        mao = self.calc.calculate(_make_record(asking_price=125_000), _make_valuation())
        assert mao.recommended == 124_600
        assert mao.recommended_strategy == "flip"
        assert mao.recommended < 125_000

    def test_recommended_falls_back_to_wholesale(self):
        mao = self.calc.calculate(_make_record(asking_price=50_000), _make_valuation())
        assert mao.recommended == mao.wholesale == 110_000
        assert mao.recommended_strategy == "wholesale"
        assert mao.viable

    def test_values_never_negative(self):
        mao = self.calc.calculate(_make_record(), _make_valuation(repair_estimate=500_000))
        for name in STRATEGY_CATALOG:
            assert getattr(mao, name) == 0
        assert not mao.viable

    def test_zero_arv(self):
        mao = self.calc.calculate(_make_record(), _make_valuation(arv=0))
        assert all(v == 0 for v in mao.by_strategy().values())
        assert mao.recommended == 0
        assert not mao.viable

    def test_known_rent_drives_rental(self):
        low = self.calc.calculate(_make_record(monthly_rent=1_000), _make_valuation())
        high = self.calc.calculate(_make_record(monthly_rent=3_000), _make_valuation())
        assert high.rental > low.rental
