from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Iterable, Sequence, Tuple

import pandas as pd

from .bonds import BondInput
from .decimal_math import to_decimal
from .errors import ConvergenceError, InvalidInputError
from .portfolio import row_id, bond_from_row
from .structures import calculate_bond

logger = logging.getLogger(__name__)

DEFAULT_SHIFTS_BP = (-50, -25, 25, 50)


def price_at_yield(bond: BondInput, yield_pct) -> Decimal:
    """Clean price of `bond` at an annual yield in percent, ignoring any call schedule."""
    repriced = dataclasses.replace(
        bond,
        given_type="Yield",
        given_value=to_decimal(yield_pct),
        call_schedule=(),
        calc_analytics=False,
        calc_cashflows=False,
    )
    return calculate_bond(repriced).result.price


def scenario_name(shift_bp) -> str:
    return f"YLD_{int(shift_bp):+d}bp"


def run_yield_scenarios(
    portfolio: pd.DataFrame,
    shifts_bp: Sequence[int] = DEFAULT_SHIFTS_BP,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Parallel yield shocks. Each bond is valued once to get its yield, then
    repriced at yield + shift for every shift. P&L is per 100 of par.

    Bonds that cannot be valued are logged and left out of both tables.
    """
    rows = []
    for i, r in portfolio.iterrows():
        bond_id = row_id(i, r)
        try:
            bond = bond_from_row(r)
            base_yield = calculate_bond(bond).result.yield_value
            row = {"bond_id": bond_id, "base_yield": float(base_yield)}
            base = price_at_yield(bond, base_yield)
            row["base"] = float(base)
            for bp in shifts_bp:
                name = scenario_name(bp)
                shocked = price_at_yield(bond, base_yield + Decimal(bp) / 100)
                row[name] = float(shocked)
                row[name + "_PnL"] = float(shocked - base)
        except (InvalidInputError, ConvergenceError) as exc:
            logger.warning("%s excluded from scenarios: %s", bond_id, exc)
            continue
        rows.append(row)

    columns = ["bond_id", "base_yield", "base"]
    for bp in shifts_bp:
        columns += [scenario_name(bp), scenario_name(bp) + "_PnL"]
    per_bond = pd.DataFrame(rows, columns=columns)

    pnl_cols = [c for c in per_bond.columns if c.endswith("_PnL")]
    summary = pd.DataFrame({
        "scenario": pnl_cols,
        "total_pnl_per_100_notional": [per_bond[c].sum() for c in pnl_cols],
    })
    return per_bond, summary


def price_yield_profile(bond: BondInput, yields: Iterable) -> pd.DataFrame:
    """Price at each yield (percent); for checking price/yield monotonicity."""
    out = []
    for y in yields:
        y_dec = to_decimal(y)
        out.append((float(y_dec), float(price_at_yield(bond, y_dec))))
    return pd.DataFrame(out, columns=["yield", "price"])
