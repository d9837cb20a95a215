from decimal import Decimal

import pytest

from bond_yield_engine.errors import ConvergenceError
from bond_yield_engine.solver import SolverResult, clamp_yield, finite_difference, newton_raphson

FV = Decimal(105)


def one_period_price(y):
    return FV / (1 + y)


def one_period_derivative(y):
    return -FV / ((1 + y) * (1 + y))


def test_analytic_derivative_converges():
    res = newton_raphson(one_period_price, Decimal(100), Decimal("0.01"), one_period_derivative)
    assert isinstance(res, SolverResult)
    assert abs(res.value - Decimal("0.05")) < Decimal("1e-8")
    assert res.residual < Decimal("1e-7")
    assert res.warnings == ()
    assert not res.relaxed


def test_finite_difference_converges():
    res = newton_raphson(one_period_price, Decimal(100), Decimal("0.01"))
    assert abs(res.value - Decimal("0.05")) < Decimal("1e-7")
    assert res.warnings == ()


def test_seed_outside_band_is_clamped():
    res = newton_raphson(one_period_price, Decimal(100), Decimal(10), one_period_derivative)
    assert abs(res.value - Decimal("0.05")) < Decimal("1e-8")


def test_clamp_yield_band():
    assert clamp_yield(Decimal(-3)) == Decimal("-0.5")
    assert clamp_yield(Decimal(9)) == Decimal("5.0")
    assert clamp_yield(Decimal("0.07")) == Decimal("0.07")


def test_finite_difference_slope():
    slope = finite_difference(one_period_price, Decimal("0.05"))
    assert abs(slope - one_period_derivative(Decimal("0.05"))) < Decimal("1e-4")


def test_zero_derivative_fails_with_context():
    with pytest.raises(ConvergenceError) as excinfo:
        newton_raphson(lambda y: Decimal(50), Decimal(100), Decimal("0.05"), label="flat")
    err = excinfo.value
    assert err.function == "flat"
    assert err.iterations == 1
    assert err.last_residual == Decimal(50)
    assert isinstance(err, ArithmeticError)


def test_relaxed_tolerance_accepted_with_warning():
    target = Decimal(100)
    res = newton_raphson(lambda y: target + Decimal("0.005"), target, Decimal("0.05"), label="near")
    assert res.relaxed
    assert any("derivative is zero" in w for w in res.warnings)
    assert any("relaxed tolerance" in w for w in res.warnings)
    assert res.residual == Decimal("0.005")


def test_iteration_cap_is_hard():
    calls = []

    def price(y):
        calls.append(y)
        return one_period_price(y)

    # unreachable: the price of a positive flow is never negative
    with pytest.raises(ConvergenceError) as excinfo:
        newton_raphson(price, Decimal(-1), Decimal("0.05"), one_period_derivative, max_iterations=5)
    assert excinfo.value.iterations == 5
    assert len(calls) <= 6
    assert all(Decimal("-0.5") <= y <= Decimal("5.0") for y in calls)


def test_default_iteration_cap_is_one_hundred():
    with pytest.raises(ConvergenceError) as excinfo:
        newton_raphson(one_period_price, Decimal(-1), Decimal("0.05"), one_period_derivative)
    assert excinfo.value.iterations == 100


def test_flat_slope_then_strict_hit_is_not_relaxed():
    target = Decimal(100)
    prices = iter([target + 1])

    def price(y):
        # first evaluation is off target, every later one lands on it
        return next(prices, target)

    res = newton_raphson(price, target, Decimal("0.05"), lambda y: Decimal(0))
    assert any("derivative is zero" in w for w in res.warnings)
    assert res.residual < Decimal("1e-7")
    assert not res.relaxed, "strict tolerance met, so the result is not a relaxed acceptance"
