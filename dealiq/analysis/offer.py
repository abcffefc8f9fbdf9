"""Maximum allowable offer (MAO) calculator.

Works backwards from the after-repair value for each exit strategy to the
highest purchase price that still leaves the strategy's margin intact.
"""

from __future__ import annotations

import logging

from dealiq.config import MAOConfig
from dealiq.models import (
    STRATEGY_CATALOG,
    BalanceSource,
    MAOSet,
    PropertyRecord,
    ValuationEstimate,
)
from dealiq.analysis.finance import estimate_monthly_rent, money

logger = logging.getLogger(__name__)


class MAOCalculator:
    """Calculates a maximum allowable offer per strategy plus a recommendation."""

    def __init__(self, config: MAOConfig):
        self.cfg = config

    def calculate(self, record: PropertyRecord, valuation: ValuationEstimate) -> MAOSet:
        balance, balance_source = self.mortgage_balance(record)

        if valuation.arv <= 0:
            # Nothing to work back from; every strategy is non-viable
            return MAOSet(
                balance_source=balance_source,
                mortgage_balance=money(balance),
                recommended=0,
                recommended_strategy="wholesale",
                viable=False,
            )

        arv = float(valuation.arv)
        repairs = float(valuation.repair_estimate)
        holding = float(valuation.holding_cost_monthly) * self.cfg.holding_months

        raw = {
            "wholesale": arv * self.cfg.wholesale_discount - repairs - self.cfg.assignment_fee,
            "flip": arv * self.cfg.flip_discount - repairs - holding,
            "brrrr": arv * self.cfg.refinance_ltv - repairs,
            "rental": self._rental_mao(record, arv, repairs),
            "sub_to": self._creative_mao(
                arv, repairs, balance,
                self.cfg.sub_to_discount,
                self.cfg.sub_to_closing_costs,
                self.cfg.sub_to_equity_payout,
            ),
            "wrap": self._creative_mao(
                arv, repairs, balance,
                self.cfg.wrap_discount,
                self.cfg.wrap_closing_costs,
                self.cfg.wrap_equity_payout,
            ),
            "jv": arv * self.cfg.jv_discount - repairs - holding - self.cfg.jv_min_profit,
        }
        values = {name: money(max(raw[name], 0.0)) for name in STRATEGY_CATALOG}

        recommended, strategy = self._recommend(values, record.asking_price)
        viable = any(v > 0 for v in values.values())
        if not viable:
            logger.info("No strategy yields a positive MAO for %s", record.id)

        return MAOSet(
            **values,
            balance_source=balance_source,
            mortgage_balance=money(balance),
            recommended=recommended,
            recommended_strategy=strategy,
            viable=viable,
        )

    def mortgage_balance(self, record: PropertyRecord) -> tuple[float, BalanceSource]:
        """Known balance when supplied, otherwise a fraction of asking price."""
        if record.mortgage_balance is not None:
            return record.mortgage_balance, BalanceSource.KNOWN
        return record.asking_price * self.cfg.assumed_balance_fraction, BalanceSource.ASSUMED

    def _rental_mao(self, record: PropertyRecord, arv: float, repairs: float) -> float:
        """Capitalize net rent at the target cap rate, less repairs."""
        if self.cfg.rental_target_cap_rate <= 0:
            return 0.0
        rent = estimate_monthly_rent(record.monthly_rent, arv, self.cfg.rent_pct_of_arv)
        noi = rent * 12 * (1 - self.cfg.rental_expense_ratio)
        return noi / self.cfg.rental_target_cap_rate - repairs

    def _creative_mao(
        self,
        arv: float,
        repairs: float,
        balance: float,
        discount: float,
        closing_costs: float,
        equity_payout: float,
    ) -> float:
        """Existing balance carried plus a share of the remaining equity paid as cash.

        ceiling = ARV x discount - repairs - closing costs; a balance above the
        ceiling makes the takeover unworkable.
        """
        ceiling = arv * discount - repairs - closing_costs
        if ceiling <= 0 or balance > ceiling:
            return 0.0
        return balance + (ceiling - balance) * equity_payout

    def _recommend(self, values: dict[str, int], asking_price: float) -> tuple[int, str]:
        """Highest MAO that is positive and below asking; wholesale otherwise."""
        best_name: str | None = None
        best_value = 0
        for name in STRATEGY_CATALOG:
            value = values[name]
            if 0 < value < asking_price and value > best_value:
                best_name, best_value = name, value
        if best_name is None:
            return values["wholesale"], "wholesale"
        return best_value, best_name
