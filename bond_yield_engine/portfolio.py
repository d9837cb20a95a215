from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import numpy as np
import pandas as pd

from .bonds import BondInput, BondValuation
from .config import DEFAULT_SETTLEMENT_DATE, DATE_FORMAT
from .errors import ConvergenceError, InvalidInputError
from .structures import calculate_bond

logger = logging.getLogger(__name__)

PRICED_COLUMNS = [
    "bond_id", "payment_type", "price", "yield", "accrued", "dirty",
    "mac_duration", "mod_duration", "convexity", "pv01",
    "redemption_type", "redemption_date", "flags", "warnings", "error",
]


def _is_missing(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _row_data(row: Mapping[str, Any]) -> Dict[str, Any]:
    data = {}
    for k, v in dict(row).items():
        if _is_missing(v):
            continue
        data[k] = v.item() if isinstance(v, np.generic) else v
    return data


def row_id(i, row: Mapping[str, Any]) -> str:
    if "bond_id" in row and not _is_missing(row["bond_id"]):
        return str(row["bond_id"])
    return f"BOND_{i:03d}"


def bond_from_row(row: Mapping[str, Any], **overrides: Any) -> BondInput:
    """BondInput from one portfolio row; NaN cells fall back to the BondInput defaults."""
    data = _row_data(row)
    data.update(overrides)
    return BondInput.from_dict(data)


def qc_flags_for_valuation(valuation: BondValuation) -> List[str]:
    flags: List[str] = []
    if any("relaxed tolerance" in w for w in valuation.warnings):
        flags.append("RELAXED")
    if valuation.redemption_info.redemption_type == "Call":
        flags.append("CALL")
    return flags


def _priced_row(bond_id: str, valuation: BondValuation) -> Dict[str, Any]:
    a = valuation.analytics
    flags = qc_flags_for_valuation(valuation)
    return {
        "bond_id": bond_id,
        "price": float(valuation.price),
        "yield": float(valuation.yield_value),
        "accrued": float(valuation.accrued_interest),
        "dirty": float(valuation.trading_price),
        "mac_duration": float(a.macaulay_duration) if a else np.nan,
        "mod_duration": float(a.modified_duration) if a else np.nan,
        "convexity": float(a.convexity) if a else np.nan,
        "pv01": float(a.pv01) if a else np.nan,
        "redemption_type": valuation.redemption_info.redemption_type,
        "redemption_date": valuation.redemption_info.redemption_date,
        "flags": "|".join(flags),
        "warnings": "; ".join(valuation.warnings),
        "error": "",
    }


def _failed_row(bond_id: str, flag: str, exc: Exception) -> Dict[str, Any]:
    row = {c: np.nan for c in PRICED_COLUMNS}
    row.update({
        "bond_id": bond_id,
        "redemption_type": "",
        "redemption_date": "",
        "flags": flag,
        "warnings": "",
        "error": str(exc),
    })
    return row


def price_portfolio(portfolio: pd.DataFrame) -> pd.DataFrame:
    """
    Value every row of a bond table.

    Columns are BondInput field names plus an optional `bond_id`. A bond that
    fails validation or whose yield cannot be solved does not abort the batch:
    it is reported with an `error` message and an INVALID / NO_CONVERGENCE flag.
    Price-type columns are floats for downstream aggregation; use
    calculate_bond directly for exact decimals.
    """
    rows = []
    for i, r in portfolio.iterrows():
        bond_id = row_id(i, r)
        try:
            bond = bond_from_row(r)
            valuation = calculate_bond(bond).result
        except InvalidInputError as exc:
            logger.warning("%s rejected: %s", bond_id, exc)
            rows.append(_failed_row(bond_id, "INVALID", exc))
            continue
        except ConvergenceError as exc:
            logger.warning("%s did not converge: %s", bond_id, exc)
            rows.append(_failed_row(bond_id, "NO_CONVERGENCE", exc))
            continue
        rows.append(_priced_row(bond_id, valuation))

    out = pd.DataFrame(rows, columns=[c for c in PRICED_COLUMNS if c != "payment_type"])
    if "payment_type" in portfolio.columns:
        out.insert(1, "payment_type", portfolio["payment_type"].fillna("Periodic").astype(str).to_numpy())
    else:
        out.insert(1, "payment_type", "Periodic")
    return out


def build_cashflow_table(portfolio: pd.DataFrame) -> pd.DataFrame:
    """One row per (bond, period) cash flow; bonds that fail to value are skipped."""
    rows = []
    for i, r in portfolio.iterrows():
        bond_id = row_id(i, r)
        try:
            valuation = calculate_bond(bond_from_row(r, calc_cashflows=True)).result
        except (InvalidInputError, ConvergenceError) as exc:
            logger.warning("%s skipped in cashflow table: %s", bond_id, exc)
            continue

        for cf in valuation.cashflow_schedule or ():
            rows.append((bond_id, cf.period, float(cf.amount), cf.kind))

    return pd.DataFrame(rows, columns=["bond_id", "period", "cashflow", "kind"])


def make_sample_portfolio(
    n: int = 20,
    settlement_date: str = DEFAULT_SETTLEMENT_DATE,
    seed: int = 7,
) -> pd.DataFrame:
    """
    Synthetic mixed-structure book for demos and tests.

    - Maturities: 1..10 whole years after settlement
    - Coupons: uniform in [2%, 8%], rounded to 1/8
    - Yields: coupon +/- up to 150bp
    - Payment types: mostly Periodic, some Discount / IAM / PIK
    """
    settle = pd.to_datetime(settlement_date, format=DATE_FORMAT)
    rng = np.random.default_rng(seed)

    years = rng.integers(1, 11, size=n)
    maturities = [(settle + pd.DateOffset(years=int(y))).strftime(DATE_FORMAT) for y in years]

    coupons = np.round(rng.uniform(2.0, 8.0, size=n) * 8) / 8
    yields = np.round(coupons + rng.uniform(-1.5, 1.5, size=n), 3)
    security = rng.choice(["Treasury", "Corporate", "Municipal", "Agency"], size=n, p=[0.4, 0.3, 0.2, 0.1])
    payment = rng.choice(["Periodic", "Discount", "IAM", "PIK"], size=n, p=[0.7, 0.1, 0.1, 0.1])
    pik = np.where(payment == "PIK", coupons, np.nan)

    return pd.DataFrame({
        "bond_id": [f"BOND_{i:03d}" for i in range(n)],
        "security_type": security,
        "payment_type": payment,
        "settlement_date": settlement_date,
        "maturity_date": maturities,
        "coupon_rate": coupons,
        "pik_rate": pik,
        "given_type": "Yield",
        "given_value": yields,
    })
