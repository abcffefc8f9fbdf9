"""Multi-year hold projection for the buy-and-hold exits.

Rental, BRRRR and the creative-finance exits keep the property for years,
so their return is cashflow plus appreciation plus the principal the tenant's
rent pays down. Wholesale, flip and JV exit at sale and get no projection.
"""

from __future__ import annotations

from typing import Optional

from dealiq.config import MAOConfig, StrategyConfig
from dealiq.models import HoldingProjection, MAOSet, PropertyRecord, ValuationEstimate
from dealiq.analysis.finance import estimate_monthly_rent, money, monthly_payment, principal_paid

HOLD_STRATEGIES = ("brrrr", "rental", "sub_to", "wrap")


class HoldingPeriodAnalyzer:
    def __init__(self, config: StrategyConfig, mao_config: MAOConfig):
        self.cfg = config
        self.mao_cfg = mao_config

    def project(
        self,
        record: PropertyRecord,
        valuation: ValuationEstimate,
        mao: MAOSet,
        strategy: str,
    ) -> Optional[HoldingProjection]:
        if strategy not in HOLD_STRATEGIES or valuation.arv <= 0:
            return None

        arv = float(valuation.arv)
        loan, rate, term = self._loan(record, arv, mao, strategy)
        payment = monthly_payment(loan, rate, term)

        if strategy == "wrap":
            # The end buyer's note payment covers the underlying loan
            sale = arv * self.cfg.wrap_sale_pct
            note = sale - sale * self.cfg.wrap_down_payment_pct
            cashflow = monthly_payment(note, self.cfg.wrap_interest_rate, self.cfg.loan_term_years) - payment
        else:
            rent = estimate_monthly_rent(record.monthly_rent, arv, self.mao_cfg.rent_pct_of_arv)
            cashflow = rent - rent * self.mao_cfg.rental_expense_ratio - payment

        years = self.cfg.projection_years
        total_cashflow = cashflow * 12 * years
        appreciation = arv * ((1 + self.cfg.annual_appreciation) ** years - 1)
        paydown = principal_paid(loan, rate, term, years * 12)

        return HoldingProjection(
            strategy=strategy,
            years=years,
            monthly_cashflow=money(cashflow),
            cashflow=money(total_cashflow),
            appreciation=money(appreciation),
            principal_paydown=money(paydown),
            total_return=money(total_cashflow + appreciation + paydown),
        )

    def _loan(
        self, record: PropertyRecord, arv: float, mao: MAOSet, strategy: str
    ) -> tuple[float, float, int]:
        """Principal, annual rate and term of the loan carried during the hold."""
        if strategy == "rental":
            principal = record.asking_price * (1 - self.cfg.down_payment_pct)
            return principal, self.cfg.interest_rate, self.cfg.loan_term_years
        if strategy == "brrrr":
            return arv * self.mao_cfg.refinance_ltv, self.cfg.interest_rate, self.cfg.loan_term_years
        # sub_to and wrap keep the seller's existing loan
        return (
            float(mao.mortgage_balance),
            self.cfg.sub_to_interest_rate,
            self.cfg.sub_to_remaining_years,
        )
