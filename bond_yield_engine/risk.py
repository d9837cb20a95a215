from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Sequence

from .bonds import Analytics, CashFlow
from .config import BASIS_POINTS, DECIMAL_CONTEXT, PAR
from .decimal_math import ONE, ZERO

_ZERO_ANALYTICS = Analytics(ZERO, ZERO, ZERO, ZERO, ZERO)
_THIRTY_SECOND = ONE / Decimal(32)


def _with_price_sensitivities(mac: Decimal, mod: Decimal, convexity: Decimal, clean_price: Decimal) -> Analytics:
    pv01 = mod * clean_price / BASIS_POINTS
    dollar_duration = mod * clean_price / PAR
    yv32 = _THIRTY_SECOND / dollar_duration if dollar_duration > ZERO else ZERO
    return Analytics(
        macaulay_duration=mac,
        modified_duration=mod,
        convexity=convexity,
        pv01=pv01,
        yv32=yv32,
    )


def cashflow_analytics(
    flows: Sequence[CashFlow],
    y_periodic: Decimal,
    freq: int,
    clean_price: Decimal,
) -> Analytics:
    """
    Duration/convexity from the same discounted series used for pricing.

    Macaulay = sum(t * PV) / sum(PV), t = period / freq
    Modified = Macaulay / (1 + y)
    Convexity = sum((t^2 + t/freq) * PV) / (sum(PV) * (1 + y)^2)
    PV01 = modified * price / 10000
    YV32 = (1/32) / (modified * price / 100)
    """
    with localcontext(DECIMAL_CONTEXT):
        one_plus_y = ONE + y_periodic
        if one_plus_y <= ZERO or clean_price <= ZERO:
            return _ZERO_ANALYTICS

        freq_dec = Decimal(freq)
        mac_num = ZERO
        conv_num = ZERO
        price_sum = ZERO
        discount = ONE
        period = 0
        for cf in flows:
            while period < cf.period:
                discount *= one_plus_y
                period += 1
            t = Decimal(cf.period) / freq_dec
            pv_cf = cf.amount / discount
            price_sum += pv_cf
            mac_num += t * pv_cf
            conv_num += (t * t + t / freq_dec) * pv_cf

        if price_sum <= ZERO:
            return _ZERO_ANALYTICS

        mac = mac_num / price_sum
        mod = mac / one_plus_y
        convexity = conv_num / (price_sum * one_plus_y * one_plus_y)
        return _with_price_sensitivities(mac, mod, convexity, clean_price)


def single_flow_analytics(
    years: Decimal,
    annual_yield: Decimal,
    compounding: int,
    clean_price: Decimal,
) -> Analytics:
    """A single payment at `years`: Macaulay duration is the time to that payment."""
    with localcontext(DECIMAL_CONTEXT):
        factor = ONE + annual_yield / compounding
        if factor <= ZERO or clean_price <= ZERO:
            return _ZERO_ANALYTICS

        mac = years
        mod = mac / factor
        convexity = years * (years + ONE / compounding) / (factor * factor)
        return _with_price_sensitivities(mac, mod, convexity, clean_price)


def estimate_price_change(analytics: Analytics, price: Decimal, shift_bp: Decimal) -> Decimal:
    """Duration + convexity approximation of the price move for a yield shift in bp."""
    with localcontext(DECIMAL_CONTEXT):
        dy = Decimal(shift_bp) / BASIS_POINTS
        first = -analytics.modified_duration * price * dy
        second = analytics.convexity * price * dy * dy / 2
        return first + second
