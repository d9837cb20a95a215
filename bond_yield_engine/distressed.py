from __future__ import annotations

from decimal import Decimal, localcontext

from .config import DECIMAL_CONTEXT
from .decimal_math import ONE, ZERO, Number, dec_pow, to_decimal


def irr_at_market(market_value: Number, recovery_value: Number, years: Number) -> Decimal:
    """
    Annualised return from buying at `market_value` and recovering
    `recovery_value` after `years`:

        (recovery / market) ^ (1 / years) - 1

    0 when the market value or the horizon is not positive, -1 (total loss)
    when nothing is recovered.
    """
    market = to_decimal(market_value)
    recovery = to_decimal(recovery_value)
    t = to_decimal(years)
    with localcontext(DECIMAL_CONTEXT):
        if market <= ZERO or t <= ZERO:
            return ZERO
        if recovery <= ZERO:
            return -ONE
        return dec_pow(recovery / market, ONE / t) - ONE
