"""Exit strategy recommendation.

Each strategy in the catalog has an eligibility guard and, when eligible, a
0-100 desirability score built from its own profit, cashflow and fit
indicators. Ineligible strategies are left out of the ranking entirely.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from dealiq.config import MAOConfig, StrategyConfig
from dealiq.models import (
    STRATEGY_CATALOG,
    BalanceSource,
    DueOnSaleRisk,
    MAOSet,
    PropertyRecord,
    RepairTier,
    ScoreSet,
    StrategyCandidate,
    StrategyRecommendation,
    ValuationEstimate,
)
from dealiq.analysis.finance import clamp, estimate_monthly_rent, money, monthly_payment

logger = logging.getLogger(__name__)

PASS_CANDIDATE = StrategyCandidate(
    name="PASS",
    eligible=False,
    score=0.0,
    profit_estimate=0,
    rationale="No exit strategy clears its eligibility guard",
)


class _Inputs:
    """Figures shared by every strategy evaluation for one property."""

    def __init__(
        self,
        record: PropertyRecord,
        valuation: ValuationEstimate,
        mao: MAOSet,
        scores: ScoreSet,
        mao_cfg: MAOConfig,
    ):
        self.record = record
        self.valuation = valuation
        self.mao = mao
        self.scores = scores
        self.arv = float(valuation.arv)
        self.asking = record.asking_price
        self.repairs = float(valuation.repair_estimate)
        self.rent = estimate_monthly_rent(record.monthly_rent, self.arv, mao_cfg.rent_pct_of_arv)
        self.operating_expenses = self.rent * mao_cfg.rental_expense_ratio


class StrategyRecommender:
    """Ranks the fixed catalog of exit strategies for a property."""

    def __init__(self, config: StrategyConfig, mao_config: MAOConfig):
        self.cfg = config
        self.mao_cfg = mao_config
        self._evaluators: dict[str, Callable[[_Inputs], Optional[StrategyCandidate]]] = {
            "wholesale": self._wholesale,
            "flip": self._flip,
            "brrrr": self._brrrr,
            "rental": self._rental,
            "sub_to": self._sub_to,
            "wrap": self._wrap,
            "jv": self._jv,
        }

    def recommend(
        self,
        record: PropertyRecord,
        valuation: ValuationEstimate,
        mao: MAOSet,
        scores: ScoreSet,
    ) -> StrategyRecommendation:
        if valuation.arv <= 0:
            return StrategyRecommendation(primary=PASS_CANDIDATE, confidence=0.0)

        inputs = _Inputs(record, valuation, mao, scores, self.mao_cfg)
        candidates: list[StrategyCandidate] = []
        for name in STRATEGY_CATALOG:
            candidate = self._evaluators[name](inputs)
            if candidate is not None:
                candidates.append(candidate)

        if not candidates:
            logger.debug("No eligible strategies for %s", record.id)
            return StrategyRecommendation(primary=PASS_CANDIDATE, confidence=0.0)

        # sorted() is stable, so equal (score, profit) keep catalog order
        ranked = sorted(candidates, key=lambda c: (-c.score, -c.profit_estimate))
        primary = ranked[0]
        return StrategyRecommendation(
            primary=primary,
            secondary=ranked[1] if len(ranked) > 1 else None,
            ranked=ranked,
            confidence=round(primary.score * valuation.confidence / 100, 1),
        )

    def assess_due_on_sale(
        self, record: PropertyRecord, valuation: ValuationEstimate, mao: MAOSet
    ) -> DueOnSaleRisk:
        """Risk that taking title subject-to the existing loan triggers its due-on-sale clause."""
        ltv = mao.mortgage_balance / valuation.arv if valuation.arv > 0 else 0.0
        level = "low"
        factors = []
        if mao.balance_source == BalanceSource.ASSUMED:
            factors.append("Mortgage balance assumed; loan terms unverified")
        if ltv > self.cfg.due_on_sale_high_ltv:
            level = "medium"
            factors.append("High LTV may trigger lender attention")
        if record.mentions(self.cfg.loan_default_keywords):
            level = "high"
            factors.append("Loan in default; the lender is already watching it")
        if not factors:
            factors.append("Low LTV and no payment distress noted")
        return DueOnSaleRisk(level=level, loan_to_value=round(ltv, 3), factors=factors)

    def _motivated(self, record: PropertyRecord) -> bool:
        return (
            record.motivation_score >= self.cfg.sub_to_min_motivation
            or bool(record.mentions(self.cfg.creative_finance_keywords))
        )

    def _existing_payment(self, balance: float) -> float:
        return monthly_payment(balance, self.cfg.sub_to_interest_rate, self.cfg.sub_to_remaining_years)

    @staticmethod
    def _candidate(name: str, score: float, profit: float, rationale: str) -> StrategyCandidate:
        return StrategyCandidate(
            name=name,
            eligible=True,
            score=round(clamp(score), 1),
            profit_estimate=money(profit),
            rationale=rationale,
        )

    def _wholesale(self, x: _Inputs) -> Optional[StrategyCandidate]:
        # What an end buyer pays (MAO + fee) less what we contract at (asking)
        spread = x.mao.wholesale + self.mao_cfg.assignment_fee - x.asking
        if x.mao.wholesale <= 0 or spread < self.cfg.min_wholesale_spread:
            return None
        fee_scale = max(self.mao_cfg.assignment_fee * 2, 1.0)
        score = (
            50 * min(spread / fee_scale, 1.0)
            + 0.25 * x.scores.velocity_score
            + 0.25 * x.scores.motivation_score
        )
        return self._candidate(
            "wholesale", score, spread, f"Assignment spread ${spread:,.0f} at asking"
        )

    def _flip(self, x: _Inputs) -> Optional[StrategyCandidate]:
        profit = x.scores.profit_estimate
        max_tier = self.cfg.flip_max_repair_tier
        if profit < self.cfg.flip_min_profit or x.valuation.repair_tier.rank > max_tier.rank:
            return None
        invested = x.asking + x.repairs
        roi = profit / invested if invested > 0 else 1.0
        score = (
            50 * min(roi / 0.30, 1.0)
            + 0.3 * x.scores.velocity_score
            + 0.2 * x.scores.market_volume_score
        )
        return self._candidate(
            "flip", score, profit, f"Net flip profit ${profit:,.0f} ({roi * 100:.1f}% ROI)"
        )

    def _brrrr(self, x: _Inputs) -> Optional[StrategyCandidate]:
        all_in = x.asking + x.repairs + x.valuation.holding_cost_monthly * self.cfg.brrrr_rehab_months
        refinance = x.arv * self.mao_cfg.refinance_ltv
        cash_left = max(all_in - refinance, 0.0)
        mortgage = monthly_payment(refinance, self.cfg.interest_rate, self.cfg.loan_term_years)
        cashflow = x.rent - x.operating_expenses - mortgage
        equity = x.scores.equity_percent
        if cashflow < self.cfg.brrrr_min_cashflow or equity < self.cfg.brrrr_min_equity_percent:
            return None
        recovery = 1 - cash_left / all_in if all_in > 0 else 1.0
        score = (
            40 * recovery
            + 30 * min(cashflow / 500, 1.0)
            + 0.3 * clamp(equity / 50 * 100)
        )
        return self._candidate(
            "brrrr",
            score,
            x.arv - all_in,
            f"Refinance leaves ${cash_left:,.0f} in the deal, ${cashflow:,.0f}/mo cashflow",
        )

    def _rental(self, x: _Inputs) -> Optional[StrategyCandidate]:
        loan = x.asking * (1 - self.cfg.down_payment_pct)
        mortgage = monthly_payment(loan, self.cfg.interest_rate, self.cfg.loan_term_years)
        cashflow = x.rent - x.operating_expenses - mortgage
        if cashflow < self.cfg.min_monthly_cashflow:
            return None
        cash_in = x.asking * self.cfg.down_payment_pct + x.repairs
        coc = cashflow * 12 / cash_in if cash_in > 0 else 1.0
        score = (
            50 * min(coc / 0.15, 1.0)
            + 30 * min(cashflow / 500, 1.0)
            + 0.2 * x.scores.market_volume_score
        )
        return self._candidate(
            "rental",
            score,
            cashflow * 12,
            f"${cashflow:,.0f}/mo cashflow, {coc * 100:.1f}% cash-on-cash",
        )

    def _sub_to(self, x: _Inputs) -> Optional[StrategyCandidate]:
        balance = float(x.mao.mortgage_balance)
        ratio = balance / x.arv
        cashflow = x.rent - x.operating_expenses - self._existing_payment(balance)
        if (
            x.mao.sub_to <= 0
            or not self._motivated(x.record)
            or ratio > self.cfg.sub_to_max_balance_ratio
            or cashflow < self.cfg.min_monthly_cashflow
        ):
            return None
        known = x.mao.balance_source == BalanceSource.KNOWN
        score = 40 * min(cashflow / 500, 1.0) + 40 * (1 - ratio) + (20 if known else 10)
        basis = "known" if known else "assumed"
        return self._candidate(
            "sub_to",
            score,
            x.arv - balance - x.repairs,
            f"Take over ${balance:,.0f} ({basis}) balance, ${cashflow:,.0f}/mo cashflow",
        )

    def _wrap(self, x: _Inputs) -> Optional[StrategyCandidate]:
        balance = float(x.mao.mortgage_balance)
        sale = x.arv * self.cfg.wrap_sale_pct
        down = sale * self.cfg.wrap_down_payment_pct
        wrap_payment = monthly_payment(sale - down, self.cfg.wrap_interest_rate, self.cfg.loan_term_years)
        spread = wrap_payment - self._existing_payment(balance)
        if (
            x.mao.wrap <= 0
            or not self._motivated(x.record)
            or spread < self.cfg.wrap_min_monthly_spread
        ):
            return None
        known = x.mao.balance_source == BalanceSource.KNOWN
        score = 50 * min(spread / 500, 1.0) + 0.3 * x.scores.motivation_score + (20 if known else 10)
        return self._candidate(
            "wrap",
            score,
            down + spread * 12 - x.repairs,
            f"Wrap note spread ${spread:,.0f}/mo over the underlying loan",
        )

    def _jv(self, x: _Inputs) -> Optional[StrategyCandidate]:
        if x.repairs < self.cfg.jv_min_repairs and x.asking < self.cfg.jv_min_price:
            return None
        share = x.scores.profit_estimate * self.cfg.jv_profit_share
        if share < self.cfg.jv_min_profit:
            return None
        score = (
            50 * min(x.scores.profit_estimate / 100_000, 1.0)
            + 0.25 * x.scores.velocity_score
            + 0.25 * x.scores.market_volume_score
        )
        return self._candidate(
            "jv", score, share, f"Partner split leaves ${share:,.0f} on a capital-heavy project"
        )
