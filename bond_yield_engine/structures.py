"""
Price <-> yield for the seven payment structures.

Each value_* entry point validates its BondInput, resolves conventions, and
either prices from the given yield (no iteration) or solves the yield that
reprices to the given clean price. Warnings from resolution and from the
solvers are collected into the returned BondValuation.

Coupon structures (periodic, stepped, multistep, part-PIK) discount a list of
per-period cash flows; discount, IAM and PIK discount one maturity amount
over fractional years.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal, localcontext
from types import MappingProxyType
from typing import Callable, List, Mapping, Sequence, Tuple

from .bonds import (
    BondInput,
    BondValuation,
    CashFlow,
    ComputationMetadata,
    ComputationOutput,
    PaymentType,
    ResolvedParameters,
    build_conventions,
    maturity_redemption,
    resolve_parameters,
    validate_bond,
)
from .calls import yield_to_worst
from .cashflows import (
    annual_yield_pct,
    coupon_flows,
    level_coupon_flows,
    pv_flows,
    pv_single,
    solve_flows_yield,
    solve_single_flow_yield,
)
from .config import (
    DECIMAL_CONTEXT,
    METHODOLOGY,
    MID_PERIOD,
    PAR,
    PART_PIK_SEED,
    PRECISION_TAG,
    STEPPED_SEED,
    VERSION,
)
from .decimal_math import ONE, ZERO, dec_pow
from .risk import cashflow_analytics, single_flow_analytics
from .utils import estimate_years, round_periods

logger = logging.getLogger(__name__)


def _prepare(bond: BondInput) -> Tuple[ResolvedParameters, List[str]]:
    validate_bond(bond)
    params = resolve_parameters(bond)
    warnings = list(params.warnings)
    if bond.call_schedule and bond.payment_type != PaymentType.PERIODIC:
        warnings.append(f"call_schedule ignored for {bond.payment_type.value} bonds")
    return params, warnings


def mid_period_accrual(annual_rate: Decimal, face: Decimal, freq: int) -> Decimal:
    """Half of one period's coupon: a mid-period approximation, not a day count."""
    return face * annual_rate / freq * MID_PERIOD


def _solve_coupon_structure(
    flows: Sequence[CashFlow],
    params: ResolvedParameters,
    bond: BondInput,
    seed: Decimal,
    label: str,
    warnings: List[str],
    analytic: bool = True,
) -> Tuple[Decimal, Decimal]:
    """(clean price, annual yield in percent) for a per-period cash-flow structure."""
    if params.given_is_price:
        solved = solve_flows_yield(flows, params.price, seed, label, analytic=analytic)
        warnings.extend(solved.warnings)
        return params.price, annual_yield_pct(solved.value, params.freq)
    return pv_flows(flows, params.periodic_yield), bond.given_value


def _solve_single_flow(
    future_value: Decimal,
    params: ResolvedParameters,
    bond: BondInput,
    compounding: int,
    label: str,
    warnings: List[str],
) -> Tuple[Decimal, Decimal]:
    years = params.years_to_maturity
    if params.given_is_price:
        solved = solve_single_flow_yield(future_value, params.price, years, compounding, label)
        warnings.extend(solved.warnings)
        return params.price, solved.value * PAR
    return pv_single(future_value, params.yield_rate, years, compounding), bond.given_value


def _coupon_valuation(
    bond: BondInput,
    params: ResolvedParameters,
    flows: Sequence[CashFlow],
    clean_price: Decimal,
    yield_pct: Decimal,
    accrued: Decimal,
    warnings: List[str],
    redemption_info=None,
    reported_yield: Decimal = None,
) -> BondValuation:
    analytics = None
    if params.calc_analytics:
        analytics = cashflow_analytics(flows, yield_pct / PAR / params.freq, params.freq, clean_price)
    return BondValuation(
        price=clean_price,
        yield_value=yield_pct if reported_yield is None else reported_yield,
        accrued_interest=accrued,
        trading_price=clean_price + accrued,
        redemption_info=redemption_info or maturity_redemption(bond, params.redemption),
        conventions=build_conventions(params),
        analytics=analytics,
        cashflow_schedule=tuple(flows) if params.calc_cashflows else None,
        warnings=tuple(warnings),
    )


def _single_flow_valuation(
    bond: BondInput,
    params: ResolvedParameters,
    flow: CashFlow,
    compounding: int,
    clean_price: Decimal,
    yield_pct: Decimal,
    accrued: Decimal,
    redemption_price: Decimal,
    warnings: List[str],
) -> BondValuation:
    analytics = None
    if params.calc_analytics:
        analytics = single_flow_analytics(params.years_to_maturity, yield_pct / PAR, compounding, clean_price)
    return BondValuation(
        price=clean_price,
        yield_value=yield_pct,
        accrued_interest=accrued,
        trading_price=clean_price + accrued,
        redemption_info=maturity_redemption(bond, redemption_price),
        conventions=build_conventions(params),
        analytics=analytics,
        cashflow_schedule=(flow,) if params.calc_cashflows else None,
        warnings=tuple(warnings),
    )


def value_periodic(bond: BondInput) -> BondValuation:
    """Level-coupon bond; reports yield-to-worst when a call schedule is given."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        coupon = params.redemption * params.coupon / params.freq
        flows = level_coupon_flows(coupon, params.redemption, params.n_periods)

        seed = coupon / params.price if params.given_is_price else ZERO
        clean_price, ytm = _solve_coupon_structure(
            flows, params, bond, seed, "Periodic yield solver", warnings
        )

        redemption_info, call_warnings = yield_to_worst(bond, params, coupon, clean_price, ytm)
        warnings.extend(call_warnings)
        worst = redemption_info.worst_yield

        accrued = mid_period_accrual(params.coupon, params.redemption, params.freq)
        return _coupon_valuation(
            bond, params, flows, clean_price, ytm, accrued, warnings,
            redemption_info=redemption_info,
            reported_yield=worst if worst is not None else ytm,
        )


def value_discount(bond: BondInput) -> BondValuation:
    """Zero-coupon: redemption discounted at the coupon frequency over fractional years."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        clean_price, yield_pct = _solve_single_flow(
            params.redemption, params, bond, params.freq, "Discount yield solver", warnings
        )
        flow = CashFlow(params.n_periods, params.redemption, "Redemption")
        return _single_flow_valuation(
            bond, params, flow, params.freq, clean_price, yield_pct,
            accrued=ZERO, redemption_price=params.redemption, warnings=warnings,
        )


def value_iam(bond: BondInput) -> BondValuation:
    """Interest-at-maturity: simple interest for the whole term paid with principal."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        total_interest = params.redemption * params.coupon * params.years_to_maturity
        maturity_payment = params.redemption + total_interest

        clean_price, yield_pct = _solve_single_flow(
            maturity_payment, params, bond, 1, "IAM yield solver", warnings
        )
        # half a year of simple interest
        accrued = params.redemption * params.coupon * MID_PERIOD
        flow = CashFlow(1, maturity_payment, "Interest + Redemption")
        return _single_flow_valuation(
            bond, params, flow, 1, clean_price, yield_pct,
            accrued=accrued, redemption_price=params.redemption, warnings=warnings,
        )


def stepped_periods(bond: BondInput, params: ResolvedParameters) -> Tuple[int, int]:
    """Periods before and after the first step date, each at least one."""
    step_years = estimate_years(params.settlement_date, bond.step_schedule[0].date)
    before = max(1, round_periods(step_years, params.freq))
    after = max(1, params.n_periods - before)
    return before, after


def value_stepped(bond: BondInput) -> BondValuation:
    """Two coupon regimes split at the first step date."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        step = bond.step_schedule[0]
        before, after = stepped_periods(bond, params)

        coupon_before = params.redemption * params.coupon / params.freq
        coupon_after = params.redemption * (step.coupon_rate / PAR) / params.freq
        flows = coupon_flows([coupon_before] * before + [coupon_after] * after, params.redemption)

        clean_price, yield_pct = _solve_coupon_structure(
            flows, params, bond, STEPPED_SEED, "Stepped yield solver", warnings
        )
        accrued = mid_period_accrual(params.coupon, params.redemption, params.freq)
        return _coupon_valuation(bond, params, flows, clean_price, yield_pct, accrued, warnings)


def multistep_segments(bond: BondInput, params: ResolvedParameters) -> Tuple[List[Tuple[int, Decimal]], List[str]]:
    """
    (periods, periodic coupon) per regime. Each step closes the segment that
    ran at the previous rate; the final segment runs at the last step's rate
    for whatever periods remain to maturity (at least one).
    """
    segments: List[Tuple[int, Decimal]] = []
    warnings: List[str] = []
    prev_date = params.settlement_date
    prev_rate = params.coupon
    total = 0

    for step in bond.step_schedule:
        seg_years = estimate_years(prev_date, step.date)
        seg_periods = max(1, round_periods(seg_years, params.freq))
        segments.append((seg_periods, params.redemption * prev_rate / params.freq))
        total += seg_periods
        prev_rate = step.coupon_rate / PAR
        prev_date = step.date

    if total < params.n_periods:
        remaining = params.n_periods - total
    else:
        remaining = 1
        warnings.append("Step schedule reaches maturity; final coupon regime priced as a single period")
    segments.append((remaining, params.redemption * prev_rate / params.freq))
    return segments, warnings


def value_multistep(bond: BondInput) -> BondValuation:
    """N coupon regimes from an ordered step schedule."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        segments, segment_warnings = multistep_segments(bond, params)
        warnings.extend(segment_warnings)

        coupons: List[Decimal] = []
        for periods, coupon in segments:
            coupons.extend([coupon] * periods)
        flows = coupon_flows(coupons, params.redemption)

        clean_price, yield_pct = _solve_coupon_structure(
            flows, params, bond, STEPPED_SEED, "Multistep yield solver", warnings
        )
        accrued = mid_period_accrual(params.coupon, params.redemption, params.freq)
        return _coupon_valuation(bond, params, flows, clean_price, yield_pct, accrued, warnings)


def accreted_principal(face: Decimal, pik_rate_pct: Decimal, freq: int, periods: int) -> Decimal:
    """face * (1 + pik/freq)^periods."""
    return face * dec_pow(ONE + pik_rate_pct / PAR / freq, periods)


def value_pik(bond: BondInput) -> BondValuation:
    """All interest accretes to principal; one accreted redemption, no cash accrual."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        accreted = accreted_principal(params.redemption, bond.pik_rate, params.freq, params.n_periods)

        clean_price, yield_pct = _solve_single_flow(
            accreted, params, bond, 1, "PIK yield solver", warnings
        )
        flow = CashFlow(params.n_periods, accreted, "Accreted Redemption (PIK)")
        return _single_flow_valuation(
            bond, params, flow, 1, clean_price, yield_pct,
            accrued=ZERO, redemption_price=accreted, warnings=warnings,
        )


def part_pik_flows(cash_coupon: Decimal, face: Decimal, pik_rate_pct: Decimal, freq: int, n: int) -> List[CashFlow]:
    accreted = accreted_principal(face, pik_rate_pct, freq, n)
    return coupon_flows([cash_coupon] * n, accreted, final_kind="Coupon + Accreted Redemption")


def value_part_pik(bond: BondInput) -> BondValuation:
    """Cash coupon each period while a separate PIK rate accretes principal."""
    with localcontext(DECIMAL_CONTEXT):
        params, warnings = _prepare(bond)
        cash_rate = bond.cash_rate / PAR
        cash_coupon = params.redemption * cash_rate / params.freq
        flows = part_pik_flows(cash_coupon, params.redemption, bond.pik_rate, params.freq, params.n_periods)

        clean_price, yield_pct = _solve_coupon_structure(
            flows, params, bond, PART_PIK_SEED, "PartPIK yield solver", warnings, analytic=False
        )
        accrued = mid_period_accrual(cash_rate, params.redemption, params.freq)
        redemption = maturity_redemption(bond, flows[-1].amount - cash_coupon)
        return _coupon_valuation(
            bond, params, flows, clean_price, yield_pct, accrued, warnings,
            redemption_info=redemption,
        )


CALCULATORS: Mapping[PaymentType, Callable[[BondInput], BondValuation]] = MappingProxyType({
    PaymentType.PERIODIC: value_periodic,
    PaymentType.DISCOUNT: value_discount,
    PaymentType.IAM: value_iam,
    PaymentType.STEPPED: value_stepped,
    PaymentType.MULTISTEP: value_multistep,
    PaymentType.PIK: value_pik,
    PaymentType.PART_PIK: value_part_pik,
})


def calculate_bond(bond: BondInput) -> ComputationOutput:
    """Value `bond` with the calculator for its payment type and wrap the result with metadata."""
    start = time.perf_counter()
    if bond.payment_type is None:
        validate_bond(bond)
    valuation = CALCULATORS[bond.payment_type](bond)
    elapsed_us = int((time.perf_counter() - start) * 1_000_000)

    logger.debug(
        "valued %s %s bond maturing %s in %dus",
        bond.security_type.value, bond.payment_type.value, bond.maturity_date, elapsed_us,
    )
    assumptions = {
        "payment_type": bond.payment_type.value,
        "security_type": bond.security_type.value,
        "day_count": valuation.conventions.day_count,
        "frequency": valuation.conventions.frequency,
        "yield_method": "Newton-Raphson",
        "precision": PRECISION_TAG,
        "par_basis": 100,
    }
    return ComputationOutput(
        result=valuation,
        methodology=METHODOLOGY,
        assumptions=assumptions,
        metadata=ComputationMetadata(VERSION, elapsed_us, PRECISION_TAG),
        warnings=valuation.warnings,
    )
