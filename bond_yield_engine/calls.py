"""Yield-to-call across a call schedule and selection of the yield-to-worst."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from .bonds import BondInput, RedemptionInfo, ResolvedParameters, maturity_redemption
from .cashflows import annual_yield_pct, level_coupon_flows, solve_flows_yield
from .decimal_math import ZERO
from .errors import ConvergenceError
from .utils import estimate_years, round_periods

logger = logging.getLogger(__name__)


def yield_to_worst(
    bond: BondInput,
    params: ResolvedParameters,
    periodic_coupon: Decimal,
    clean_price: Decimal,
    ytm_pct: Decimal,
) -> Tuple[RedemptionInfo, Tuple[str, ...]]:
    """
    Treat each call date as a synthetic maturity redeemed at the call price,
    solve its yield against `clean_price`, and keep the lowest of those and
    the yield-to-maturity.

    A call whose solve fails is reported as a warning and left out of the
    comparison. Without a call schedule the maturity is returned with no
    worst yield.
    """
    if not bond.call_schedule:
        return maturity_redemption(bond, params.redemption), ()

    warnings: List[str] = []
    worst = RedemptionInfo("Maturity", bond.maturity_date, params.redemption, ytm_pct)
    seed = periodic_coupon / clean_price

    for call in bond.call_schedule:
        call_years = estimate_years(params.settlement_date, call.date)
        periods = round_periods(call_years, params.freq) if call_years > ZERO else 0
        if periods == 0:
            warnings.append(f"Call date {call.date} has no remaining coupon periods; excluded from yield-to-worst")
            continue

        flows = level_coupon_flows(periodic_coupon, call.price, periods)
        try:
            solved = solve_flows_yield(flows, clean_price, seed, label=f"Yield-to-call solver ({call.date})")
        except ConvergenceError as exc:
            logger.warning("yield-to-call for %s did not converge: %s", call.date, exc)
            warnings.append(f"Could not solve yield-to-call for date {call.date}")
            continue

        warnings.extend(solved.warnings)
        ytc = annual_yield_pct(solved.value, params.freq)
        logger.debug("yield-to-call %s @ %s: %s", call.date, call.price, ytc)
        if ytc < worst.worst_yield:
            worst = RedemptionInfo("Call", call.date, call.price, ytc)

    return worst, tuple(warnings)
