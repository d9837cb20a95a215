from decimal import Decimal, localcontext

import pytest

from bond_yield_engine.distressed import irr_at_market


def test_doubling_over_two_years():
    with localcontext() as ctx:
        ctx.prec = 40
        expected = Decimal(2).sqrt() - 1
    assert abs(irr_at_market(50, 100, 2) - expected) < Decimal("1e-20")


def test_whole_year_horizon():
    assert abs(irr_at_market(Decimal("80"), Decimal("88"), 1) - Decimal("0.1")) < Decimal("1e-25")


def test_par_recovery_is_zero_return():
    assert irr_at_market(100, 100, 3) == 0


def test_total_loss():
    assert irr_at_market(40, 0, 2) == -1


@pytest.mark.parametrize("market, years", [(0, 2), (-5, 2), (50, 0), (50, -1)])
def test_degenerate_inputs(market, years):
    assert irr_at_market(market, 100, years) == 0
