from decimal import Decimal

import pytest

from bond_yield_engine.bonds import Analytics, BondInput, CashFlow
from bond_yield_engine.risk import cashflow_analytics, estimate_price_change, single_flow_analytics
from bond_yield_engine.structures import value_periodic


def bullet(yield_pct, **kw):
    base = dict(
        security_type="Treasury",
        maturity_date="02/22/2036",
        coupon_rate=5.0,
        given_type="Yield",
        given_value=yield_pct,
        settlement_date="02/22/2026",
    )
    base.update(kw)
    return BondInput(**base)


@pytest.fixture(scope="module")
def base_valuation():
    return value_periodic(bullet(Decimal("5.0")))


def test_pv01_matches_central_difference(base_valuation):
    up = value_periodic(bullet(Decimal("5.01"))).price
    down = value_periodic(bullet(Decimal("4.99"))).price
    central = (down - up) / 2
    assert abs(central - base_valuation.analytics.pv01) < Decimal("1e-6")


def test_modified_duration_is_price_sensitivity(base_valuation):
    a = base_valuation.analytics
    assert a.pv01 == a.modified_duration * base_valuation.price / 10000
    # 1/32 of a point moves the yield by yv32 (in decimal yield)
    dollar_duration = a.modified_duration * base_valuation.price / 100
    assert abs(a.yv32 * dollar_duration - Decimal(1) / 32) < Decimal("1e-20")


def test_estimate_price_change_close_to_reprice(base_valuation):
    for shift in (-100, 100):
        new_yield = Decimal("5.0") + Decimal(shift) / 100
        actual = value_periodic(bullet(new_yield)).price - base_valuation.price
        est = estimate_price_change(base_valuation.analytics, base_valuation.price, shift)
        assert abs(actual - est) < Decimal("0.05"), f"shift {shift}: {actual} vs {est}"


def test_longer_bond_has_longer_duration(base_valuation):
    short = value_periodic(bullet(Decimal("5.0"), maturity_date="02/22/2029"))
    assert short.analytics.macaulay_duration < base_valuation.analytics.macaulay_duration


def test_single_flow_macaulay_is_maturity():
    a = single_flow_analytics(Decimal("2.5"), Decimal("0.04"), 2, Decimal("90"))
    assert a.macaulay_duration == Decimal("2.5")
    assert a.modified_duration == Decimal("2.5") / Decimal("1.02")
    assert a.convexity == Decimal("2.5") * Decimal("3.0") / (Decimal("1.02") * Decimal("1.02"))


def test_single_flow_matches_cashflow_form():
    # 3 annual periods, one payment: both forms describe the same bond
    flows = [CashFlow(3, Decimal(100), "Redemption")]
    y = Decimal("0.05")
    price = Decimal(100) / (Decimal("1.05") ** 3)
    a = cashflow_analytics(flows, y, 1, price)
    b = single_flow_analytics(Decimal(3), y, 1, price)
    assert abs(a.macaulay_duration - b.macaulay_duration) < Decimal("1e-20")
    assert abs(a.convexity - b.convexity) < Decimal("1e-20")


@pytest.mark.parametrize("y, price", [(Decimal("-1.5"), Decimal(100)), (Decimal("0.02"), Decimal(0))])
def test_degenerate_inputs_return_zeros(y, price):
    a = cashflow_analytics([CashFlow(1, Decimal(105), "Coupon + Redemption")], y, 2, price)
    assert a == Analytics(0, 0, 0, 0, 0)
