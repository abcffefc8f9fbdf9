"""Small numeric helpers shared by the analysis stages."""

from __future__ import annotations

import math


def money(value: float) -> int:
    """Round a currency amount to the nearest whole unit (halves round up)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def ramp(value: float, x0: float, x1: float, y0: float, y1: float) -> float:
    """Linearly map value from [x0, x1] onto [y0, y1], clamped to the band."""
    if x1 == x0:
        return y1
    t = clamp((value - x0) / (x1 - x0), 0.0, 1.0)
    return y0 + (y1 - y0) * t


def monthly_payment(principal: float, annual_rate: float, years: int) -> float:
    """Calculate monthly mortgage payment."""
    if principal <= 0 or annual_rate <= 0 or years <= 0:
        return 0.0
    monthly_rate = annual_rate / 12
    num_payments = years * 12
    payment = principal * (monthly_rate * (1 + monthly_rate) ** num_payments) / (
        (1 + monthly_rate) ** num_payments - 1
    )
    return payment


def principal_paid(principal: float, annual_rate: float, years: int, months: int) -> float:
    """Principal repaid over the first ``months`` payments of an amortized loan."""
    payment = monthly_payment(principal, annual_rate, years)
    if payment <= 0:
        return 0.0
    monthly_rate = annual_rate / 12
    balance = principal
    for _ in range(min(months, years * 12)):
        balance -= payment - balance * monthly_rate
    return principal - max(balance, 0.0)


def estimate_monthly_rent(known_rent: float | None, arv: float, rent_pct_of_arv: float) -> float:
    """Known market rent when supplied, otherwise the 1%-style ARV heuristic."""
    if known_rent:
        return known_rent
    return arv * rent_pct_of_arv
