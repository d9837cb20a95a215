from decimal import Decimal, localcontext

import pytest

from bond_yield_engine.config import LN2
from bond_yield_engine.decimal_math import dec_exp, dec_ln, dec_pow, to_decimal


@pytest.mark.parametrize("x", ["0.01", "0.1", "0.5", "0.999", "1.5", "2", "3.7", "10", "42.5", "100"])
def test_exp_ln_identity(x):
    x = Decimal(x)
    back = dec_exp(dec_ln(x))
    assert abs(back - x) / x < Decimal("1e-6"), f"exp(ln({x})) = {back}"


@pytest.mark.parametrize("x", ["0.01", "0.75", "2", "7", "1000"])
def test_ln_matches_reference(x):
    x = Decimal(x)
    with localcontext() as ctx:
        ctx.prec = 40
        ref = x.ln()
    assert abs(dec_ln(x) - ref) < Decimal("1e-20")


def test_ln_of_two_is_the_constant():
    assert abs(dec_ln(2) - LN2) < Decimal("1e-25")


@pytest.mark.parametrize("x", ["0", "-1", "-0.5"])
def test_ln_non_positive_returns_zero(x):
    assert dec_ln(Decimal(x)) == 0


def test_ln_of_one_is_zero():
    assert dec_ln(1) == 0


@pytest.mark.parametrize("x", ["-3", "-0.25", "0.5", "1", "5"])
def test_exp_matches_reference(x):
    x = Decimal(x)
    with localcontext() as ctx:
        ctx.prec = 40
        ref = x.exp()
    assert abs(dec_exp(x) - ref) < Decimal("1e-20")


def test_exp_zero_is_one():
    assert dec_exp(0) == 1


def test_exp_large_negative_never_negative():
    assert dec_exp(-50) >= 0


@pytest.mark.parametrize("x", ["0.5", "1.025", "3", "97.125"])
def test_pow_fast_paths(x):
    x = Decimal(x)
    assert dec_pow(x, 1) == x
    assert dec_pow(x, 0) == 1
    assert dec_pow(1, x) == 1
    assert dec_pow(0, x) == 0


def test_pow_integer_exponent_is_repeated_multiplication():
    base = Decimal("1.025")
    expected = Decimal(1)
    for _ in range(20):
        expected *= base
    assert abs(dec_pow(base, 20) - expected) < Decimal("1e-25")


def test_pow_fractional_exponent():
    with localcontext() as ctx:
        ctx.prec = 40
        ref = Decimal(2).sqrt()
    assert abs(dec_pow(2, Decimal("0.5")) - ref) < Decimal("1e-20")

    # 1.05^2.5 = 1.05^2 * 1.05^0.5
    with localcontext() as ctx:
        ctx.prec = 40
        ref = Decimal("1.1025") * Decimal("1.05").sqrt()
    assert abs(dec_pow(Decimal("1.05"), Decimal("2.5")) - ref) < Decimal("1e-20")


def test_pow_negative_exponent_is_reciprocal():
    assert dec_pow(2, -2) == Decimal("0.25")
    assert abs(dec_pow(Decimal("1.04"), Decimal("-1.5")) * dec_pow(Decimal("1.04"), Decimal("1.5")) - 1) < Decimal("1e-20")


def test_pow_negative_base():
    assert dec_pow(-2, 3) == -8
    assert dec_pow(-2, Decimal("0.5")) == 0, "fractional power of a negative base has no real value"


def test_results_independent_of_caller_context():
    expected = dec_ln(Decimal("1.7"))
    with localcontext() as ctx:
        ctx.prec = 5
        got = dec_ln(Decimal("1.7"))
    assert got == expected


def test_to_decimal_uses_float_repr():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("5.25") == Decimal("5.25")
    assert to_decimal(3) == Decimal(3)


def test_pow_large_integer_exponent():
    base = Decimal("1.0000001")
    with localcontext() as ctx:
        ctx.prec = 40
        ref = base ** 10000000
    got = dec_pow(base, 10000000)
    assert abs(got - ref) / ref < Decimal("1e-18")
