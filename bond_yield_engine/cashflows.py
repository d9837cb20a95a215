"""
Cash-flow series and their present values.

Coupon structures are lists of CashFlow over consecutive integer periods,
discounted by repeated multiplication of (1 + y) so that no logarithm is
needed. Single-flow structures (discount, IAM, PIK) discount one amount over
a fractional number of years through dec_pow.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence

from .bonds import CashFlow
from .config import PAR
from .decimal_math import ONE, ZERO, dec_pow
from .solver import SolverResult, newton_raphson

COUPON = "Coupon"
COUPON_AND_REDEMPTION = "Coupon + Redemption"


def coupon_flows(
    coupons: Sequence[Decimal],
    redemption: Decimal,
    final_kind: str = COUPON_AND_REDEMPTION,
) -> List[CashFlow]:
    """One flow per period (1-based); the last period also carries `redemption`."""
    n = len(coupons)
    flows = []
    for i, c in enumerate(coupons, start=1):
        if i < n:
            flows.append(CashFlow(i, c, COUPON))
        else:
            flows.append(CashFlow(i, c + redemption, final_kind))
    return flows


def level_coupon_flows(coupon: Decimal, redemption: Decimal, n: int) -> List[CashFlow]:
    return coupon_flows([coupon] * max(n, 1), redemption)


def pv_flows(flows: Sequence[CashFlow], y_periodic: Decimal) -> Decimal:
    """Sum of amount / (1 + y)^period. Flows must be sorted by period."""
    one_plus_y = ONE + y_periodic
    pv = ZERO
    discount = ONE
    period = 0
    for cf in flows:
        while period < cf.period:
            discount *= one_plus_y
            period += 1
        pv += cf.amount / discount
    return pv


def pv_flows_derivative(flows: Sequence[CashFlow], y_periodic: Decimal) -> Decimal:
    """dP/dy = -sum period * amount / (1 + y)^(period + 1)."""
    one_plus_y = ONE + y_periodic
    total = ZERO
    discount = ONE
    period = 0
    for cf in flows:
        while period < cf.period:
            discount *= one_plus_y
            period += 1
        total -= cf.period * cf.amount / (discount * one_plus_y)
    return total


def solve_flows_yield(
    flows: Sequence[CashFlow],
    target_price: Decimal,
    seed: Decimal,
    label: str,
    analytic: bool = True,
) -> SolverResult:
    """Periodic yield that reprices `flows` to `target_price`."""
    derivative = (lambda y: pv_flows_derivative(flows, y)) if analytic else None
    return newton_raphson(
        lambda y: pv_flows(flows, y),
        target_price,
        seed,
        derivative,
        label=label,
    )


def pv_single(future_value: Decimal, annual_yield: Decimal, years: Decimal, compounding: int) -> Decimal:
    """future_value / (1 + y/m)^(m * t) for a fractional t."""
    base = ONE + annual_yield / compounding
    return future_value / dec_pow(base, compounding * years)


def pv_single_derivative(future_value: Decimal, annual_yield: Decimal, years: Decimal, compounding: int) -> Decimal:
    base = ONE + annual_yield / compounding
    return -years * future_value / dec_pow(base, compounding * years + ONE)


def solve_single_flow_yield(
    future_value: Decimal,
    price: Decimal,
    years: Decimal,
    compounding: int,
    label: str,
) -> SolverResult:
    """Annual yield y with price = future_value / (1 + y/m)^(m * t)."""
    seed = (future_value / price - ONE) / years
    return newton_raphson(
        lambda y: pv_single(future_value, y, years, compounding),
        price,
        seed,
        lambda y: pv_single_derivative(future_value, y, years, compounding),
        label=label,
    )


def annual_yield_pct(y_periodic: Decimal, freq: int) -> Decimal:
    return y_periodic * freq * PAR
