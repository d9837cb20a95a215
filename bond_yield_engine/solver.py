"""
Newton-Raphson root finder for price -> yield inversion.

Given a present-value function P(y) and a target price, iterate

    y <- y + (target - P(y)) / P'(y)

with P' analytic when the caller supplies it, otherwise a forward difference.
Every step is clamped into [YIELD_FLOOR, YIELD_CAP]. The loop is hard-capped
at MAX_ITERATIONS; a result that misses the strict tolerance is still
accepted (with a warning) if it reprices within RELAXED_TOLERANCE.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Callable, List, Optional, Tuple

from .config import (
    DECIMAL_CONTEXT,
    FD_BUMP,
    MAX_ITERATIONS,
    MIN_DERIVATIVE,
    RELAXED_TOLERANCE,
    TOLERANCE,
    YIELD_CAP,
    YIELD_FLOOR,
)
from .decimal_math import Number, to_decimal
from .errors import ConvergenceError

logger = logging.getLogger(__name__)

PriceFn = Callable[[Decimal], Decimal]


@dataclass(frozen=True)
class SolverResult:
    value: Decimal
    iterations: int
    residual: Decimal
    warnings: Tuple[str, ...] = ()
    relaxed: bool = False  # accepted under the relaxed tolerance only


def clamp_yield(y: Decimal, floor: Decimal = YIELD_FLOOR, cap: Decimal = YIELD_CAP) -> Decimal:
    if y < floor:
        return floor
    if y > cap:
        return cap
    return y


def finite_difference(
    price_fn: PriceFn,
    y: Decimal,
    bump: Decimal = FD_BUMP,
    base_price: Optional[Decimal] = None,
) -> Decimal:
    """Forward difference (P(y + bump) - P(y)) / bump."""
    if base_price is None:
        base_price = price_fn(y)
    return (price_fn(y + bump) - base_price) / bump


def newton_raphson(
    price_fn: PriceFn,
    target_price: Number,
    seed: Number,
    derivative_fn: Optional[PriceFn] = None,
    *,
    label: str = "Yield solver",
    tolerance: Decimal = TOLERANCE,
    relaxed_tolerance: Decimal = RELAXED_TOLERANCE,
    max_iterations: int = MAX_ITERATIONS,
) -> SolverResult:
    """
    Solve P(y) = target_price for y.

    Returns a SolverResult carrying any non-fatal warnings (relaxed
    convergence, vanishing derivative). Raises ConvergenceError when the
    final residual misses the relaxed tolerance as well.
    """
    target = to_decimal(target_price)
    warnings: List[str] = []

    with localcontext(DECIMAL_CONTEXT):
        y = clamp_yield(to_decimal(seed))
        iterations = 0

        while iterations < max_iterations:
            price = price_fn(y)
            residual = target - price
            if abs(residual) < tolerance:
                logger.debug("%s converged: y=%s after %d iterations", label, y, iterations)
                return SolverResult(y, iterations, abs(residual))

            iterations += 1
            if derivative_fn is not None:
                slope = derivative_fn(y)
            else:
                slope = finite_difference(price_fn, y, base_price=price)

            if abs(slope) < MIN_DERIVATIVE:
                warnings.append(f"{label}: derivative is zero")
                logger.debug("%s: derivative vanished at y=%s", label, y)
                break

            y = clamp_yield(y + residual / slope)

        residual = abs(target - price_fn(y))
        if residual < tolerance:
            return SolverResult(y, iterations, residual, tuple(warnings))
        if residual < relaxed_tolerance:
            message = f"{label}: converged with relaxed tolerance (residual: {residual})"
            logger.warning(message)
            warnings.append(message)
            return SolverResult(y, iterations, residual, tuple(warnings), relaxed=True)

    logger.debug("%s failed: residual %s after %d iterations", label, residual, iterations)
    raise ConvergenceError(label, iterations, residual)
