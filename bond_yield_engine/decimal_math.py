"""
Transcendental functions over ``decimal.Decimal``.

ln / exp / pow are evaluated by series expansion inside the engine's own
decimal context, so a price or yield never round-trips through binary
floating point. None of these functions raise on an undefined domain: they
return a zero sentinel, and callers guard against non-positive bases before
calling.
"""
from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Union

from .config import (
    DECIMAL_CONTEXT,
    EXP_EPSILON,
    EXP_MAX_TERMS,
    LN2,
    LN_SERIES_TERMS,
)

Number = Union[Decimal, int, str, float]

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
HALF = Decimal("0.5")


def to_decimal(value: Number) -> Decimal:
    """Coerce caller input to Decimal; floats go through their shortest repr."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(float(value)))
    return Decimal(value)


def dec_ln(x: Number) -> Decimal:
    """
    Natural logarithm.

    x is halved/doubled into [0.5, 2.0] (k reductions), then
      ln(x) = 2 * sum u^(2i+1) / (2i+1) + k * ln(2),   u = (x-1)/(x+1)
    with |u| <= 1/3, summed over a fixed number of terms.
    Returns 0 for x <= 0.
    """
    x = to_decimal(x)
    with localcontext(DECIMAL_CONTEXT):
        if x <= ZERO or x == ONE:
            return ZERO

        k = 0
        val = x
        while val > TWO:
            val /= TWO
            k += 1
        while val < HALF:
            val *= TWO
            k -= 1

        u = (val - ONE) / (val + ONE)
        u_sq = u * u
        term = u
        total = u
        for i in range(1, LN_SERIES_TERMS):
            term *= u_sq
            total += term / (2 * i + 1)

        return TWO * total + k * LN2


def dec_exp(x: Number) -> Decimal:
    """
    Exponential via the Taylor series sum x^n / n!.

    Accumulates term *= x / n until the term drops below EXP_EPSILON or
    EXP_MAX_TERMS is reached. A negative sum (truncation undershoot for large
    negative x) is clamped to zero.
    """
    x = to_decimal(x)
    with localcontext(DECIMAL_CONTEXT):
        if x.is_zero():
            return ONE

        term = ONE
        result = ONE
        for n in range(1, EXP_MAX_TERMS):
            term *= x / n
            result += term
            if abs(term) < EXP_EPSILON:
                break

        if result < ZERO:
            return ZERO
        return result


def dec_pow(base: Number, exponent: Number) -> Decimal:
    """
    base ** exponent.

    The integer part of the exponent is applied by binary exponentiation
    (multiplication only, no series error); only the fractional remainder
    goes through exp(f * ln(base)). Negative exponents return the reciprocal
    of the positive power. A negative base with a fractional exponent
    returns 0. A result outside the context's exponent range raises
    decimal.Overflow.
    """
    base = to_decimal(base)
    exponent = to_decimal(exponent)
    with localcontext(DECIMAL_CONTEXT):
        if exponent.is_zero():
            return ONE
        if exponent == ONE:
            return base
        if base.is_zero():
            return ZERO
        if base == ONE:
            return ONE

        if exponent < ZERO:
            positive = dec_pow(base, -exponent)
            if positive.is_zero():
                return ZERO
            return ONE / positive

        whole = int(exponent)
        frac = exponent - whole

        result = ONE
        power = base
        while whole:
            if whole & 1:
                result *= power
            whole >>= 1
            if whole:
                power *= power

        if frac > ZERO:
            if base < ZERO:
                return ZERO
            result *= dec_exp(frac * dec_ln(base))

        return result
