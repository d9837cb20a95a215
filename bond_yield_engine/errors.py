"""Errors raised by the bond engine."""

from __future__ import annotations

from decimal import Decimal


class BondMathError(Exception):
    """Base class for engine errors."""


class InvalidInputError(BondMathError, ValueError):
    """A bond input failed validation before any numeric work started."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid input for '{field}': {reason}")


class ConvergenceError(BondMathError, ArithmeticError):
    """Both the strict and relaxed tolerances were missed within the iteration cap."""

    def __init__(self, function: str, iterations: int, last_residual: Decimal):
        self.function = function
        self.iterations = iterations
        self.last_residual = last_residual
        super().__init__(
            f"{function} failed to converge after {iterations} iterations "
            f"(last residual {last_residual})"
        )
