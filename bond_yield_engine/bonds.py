from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .config import DECIMAL_CONTEXT, DEFAULT_SETTLEMENT_DATE, PAR, SECURITY_DEFAULTS
from .decimal_math import ZERO, to_decimal
from .errors import InvalidInputError
from .utils import estimate_years, parse_date, round_periods


class SecurityType(str, Enum):
    TREASURY = "Treasury"
    AGENCY = "Agency"
    CORPORATE = "Corporate"
    MUNICIPAL = "Municipal"
    CD = "CD"


class PaymentType(str, Enum):
    PERIODIC = "Periodic"
    DISCOUNT = "Discount"
    IAM = "IAM"
    STEPPED = "Stepped"
    MULTISTEP = "Multistep"
    PIK = "PIK"
    PART_PIK = "PartPIK"


class DayCount(str, Enum):
    SSCM30_360 = "SSCM30_360"
    ACTUAL_ACTUAL = "ActualActual"
    ACTUAL_360 = "Actual360"
    ACTUAL_365 = "Actual365"


class EomRule(str, Enum):
    ADJUST = "Adjust"
    NO_ADJUST = "NoAdjust"


class Frequency(str, Enum):
    ANNUAL = "Annual"
    SEMIANNUAL = "Semiannual"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    Frequency.ANNUAL: 1,
    Frequency.SEMIANNUAL: 2,
    Frequency.QUARTERLY: 4,
    Frequency.MONTHLY: 12,
}

GIVEN_TYPES = ("Price", "Yield")


def _as_enum(value, enum_cls, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidInputError(field_name, f"Unknown {enum_cls.__name__} '{value}'") from exc


def _as_decimal(value, field_name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        out = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInputError(field_name, f"Not a decimal number: {value!r}") from exc
    if not out.is_finite():
        raise InvalidInputError(field_name, f"Must be finite, got {value!r}")
    return out


@dataclass(frozen=True)
class CallRedemption:
    date: str
    price: Decimal

    def __post_init__(self):
        object.__setattr__(self, "price", _as_decimal(self.price, "call_schedule.price"))


@dataclass(frozen=True)
class StepCoupon:
    date: str
    coupon_rate: Decimal  # percent

    def __post_init__(self):
        object.__setattr__(self, "coupon_rate", _as_decimal(self.coupon_rate, "step_schedule.coupon_rate"))


def _as_schedule(items: Optional[Iterable], item_cls) -> Tuple:
    if items is None:
        return ()
    out = []
    for item in items:
        if isinstance(item, item_cls):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(item_cls(**item))
        else:
            out.append(item_cls(*item))
    return tuple(out)


@dataclass(frozen=True)
class BondInput:
    """
    One bond to value. Rates are in percent (5.0 = 5%), dates MM/DD/YYYY.

    Strings are accepted for the enum fields and anything Decimal() accepts
    for the numeric ones; both are normalised on construction.
    """
    security_type: SecurityType
    maturity_date: str
    coupon_rate: Decimal
    given_type: str
    given_value: Decimal
    payment_type: PaymentType = PaymentType.PERIODIC
    settlement_date: Optional[str] = None
    redemption_value: Optional[Decimal] = None
    day_count: Optional[DayCount] = None
    eom_rule: Optional[EomRule] = None
    frequency: Optional[Frequency] = None
    call_schedule: Tuple[CallRedemption, ...] = ()
    step_schedule: Tuple[StepCoupon, ...] = ()
    pik_rate: Optional[Decimal] = None
    cash_rate: Optional[Decimal] = None
    calc_analytics: bool = True
    calc_cashflows: bool = False

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, "security_type", _as_enum(self.security_type, SecurityType, "security_type"))
        set_(self, "payment_type", _as_enum(self.payment_type, PaymentType, "payment_type"))
        set_(self, "day_count", _as_enum(self.day_count, DayCount, "day_count"))
        set_(self, "eom_rule", _as_enum(self.eom_rule, EomRule, "eom_rule"))
        set_(self, "frequency", _as_enum(self.frequency, Frequency, "frequency"))
        for name in ("coupon_rate", "given_value", "redemption_value", "pik_rate", "cash_rate"):
            set_(self, name, _as_decimal(getattr(self, name), name))
        set_(self, "call_schedule", _as_schedule(self.call_schedule, CallRedemption))
        set_(self, "step_schedule", _as_schedule(self.step_schedule, StepCoupon))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BondInput":
        """Build from plain data; keys that are not BondInput fields are ignored."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class ResolvedParameters:
    coupon: Decimal           # annual, decimal fraction
    yield_rate: Decimal       # annual, decimal fraction; zero when price is given
    price: Decimal            # zero when yield is given
    given_is_price: bool
    redemption: Decimal
    freq: int
    n_periods: int
    years_to_maturity: Decimal
    day_count: DayCount
    eom_rule: EomRule
    frequency: Frequency
    calc_analytics: bool
    calc_cashflows: bool
    settlement_date: str
    warnings: Tuple[str, ...] = ()

    @property
    def periodic_yield(self) -> Decimal:
        return self.yield_rate / self.freq


@dataclass(frozen=True)
class CashFlow:
    period: int
    amount: Decimal
    kind: str


@dataclass(frozen=True)
class Analytics:
    macaulay_duration: Decimal
    modified_duration: Decimal
    convexity: Decimal
    pv01: Decimal
    yv32: Decimal


@dataclass(frozen=True)
class RedemptionInfo:
    redemption_type: str
    redemption_date: str
    redemption_price: Decimal
    worst_yield: Optional[Decimal] = None


@dataclass(frozen=True)
class Conventions:
    day_count: str
    frequency: str
    eom_rule: str
    settlement_date: str


@dataclass(frozen=True)
class BondValuation:
    price: Decimal
    yield_value: Decimal      # percent
    accrued_interest: Decimal
    trading_price: Decimal    # clean + accrued
    redemption_info: RedemptionInfo
    conventions: Conventions
    analytics: Optional[Analytics] = None
    cashflow_schedule: Optional[Tuple[CashFlow, ...]] = None
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComputationMetadata:
    version: str
    computation_time_us: int
    precision: str


@dataclass(frozen=True)
class ComputationOutput:
    result: BondValuation
    methodology: str
    assumptions: Dict[str, Any]
    metadata: ComputationMetadata
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def _check_percent(value: Optional[Decimal], field_name: str) -> None:
    if value is not None and not (ZERO <= value <= PAR):
        raise InvalidInputError(field_name, f"Must be between 0 and 100 percent, got {value}")


def validate_bond(bond: BondInput) -> None:
    """Fail fast on anything that would make the numeric work meaningless."""
    if bond.security_type is None:
        raise InvalidInputError("security_type", "A security type is required")
    if bond.payment_type is None:
        raise InvalidInputError("payment_type", "A payment type is required")
    if bond.given_type not in GIVEN_TYPES:
        raise InvalidInputError("given_type", "Must be 'Price' or 'Yield'")
    if bond.given_value is None:
        raise InvalidInputError("given_value", "A price or yield is required")
    if bond.given_type == "Price" and bond.given_value <= ZERO:
        raise InvalidInputError("given_value", "Price must be positive")
    if bond.given_type == "Yield" and bond.given_value <= -PAR:
        raise InvalidInputError("given_value", "Yield must be greater than -100%")

    if bond.coupon_rate is None:
        raise InvalidInputError("coupon_rate", "A coupon rate is required")
    _check_percent(bond.coupon_rate, "coupon_rate")
    _check_percent(bond.pik_rate, "pik_rate")
    _check_percent(bond.cash_rate, "cash_rate")

    if bond.redemption_value is not None and bond.redemption_value <= ZERO:
        raise InvalidInputError("redemption_value", "Redemption value must be positive")

    if bond.payment_type in (PaymentType.STEPPED, PaymentType.MULTISTEP) and not bond.step_schedule:
        raise InvalidInputError("step_schedule", "Stepped/Multistep payment type requires step_schedule")
    if bond.payment_type == PaymentType.PIK and bond.pik_rate is None:
        raise InvalidInputError("pik_rate", "PIK payment type requires pik_rate")
    if bond.payment_type == PaymentType.PART_PIK and (bond.pik_rate is None or bond.cash_rate is None):
        raise InvalidInputError("pik_rate/cash_rate", "PartPIK payment type requires both pik_rate and cash_rate")

    settle = parse_date(bond.settlement_date or DEFAULT_SETTLEMENT_DATE, "settlement_date")
    maturity = parse_date(bond.maturity_date, "maturity_date")
    if maturity <= settle:
        raise InvalidInputError("maturity_date", "Maturity date must be after settlement date")

    previous = settle
    for step in bond.step_schedule:
        step_date = parse_date(step.date, "step_schedule")
        if step_date <= previous:
            raise InvalidInputError("step_schedule", f"Step date {step.date} must follow settlement and earlier steps")
        if step_date >= maturity:
            raise InvalidInputError("step_schedule", f"Step date {step.date} must precede maturity {bond.maturity_date}")
        _check_percent(step.coupon_rate, "step_schedule.coupon_rate")
        previous = step_date

    for call in bond.call_schedule:
        parse_date(call.date, "call_schedule")
        if call.price <= ZERO:
            raise InvalidInputError("call_schedule", f"Call price for {call.date} must be positive")


def resolve_parameters(bond: BondInput) -> ResolvedParameters:
    """Apply security-type defaults and derive the period count. Assumes validate_bond passed."""
    default_dc, default_freq = SECURITY_DEFAULTS[bond.security_type.value]
    day_count = bond.day_count or DayCount(default_dc)
    frequency = bond.frequency or Frequency(default_freq)
    eom_rule = bond.eom_rule or EomRule.ADJUST
    settlement = bond.settlement_date or DEFAULT_SETTLEMENT_DATE
    warnings = []

    with localcontext(DECIMAL_CONTEXT):
        redemption = bond.redemption_value if bond.redemption_value is not None else PAR
        freq = frequency.periods_per_year
        years = estimate_years(settlement, bond.maturity_date)

        n_periods = round_periods(years, freq)
        if n_periods == 0:
            warnings.append("Very short-dated bond: computing as single period")
            n_periods = 1

        given_is_price = bond.given_type == "Price"
        price = bond.given_value if given_is_price else ZERO
        yield_rate = ZERO if given_is_price else bond.given_value / PAR

        return ResolvedParameters(
            coupon=bond.coupon_rate / PAR,
            yield_rate=yield_rate,
            price=price,
            given_is_price=given_is_price,
            redemption=redemption,
            freq=freq,
            n_periods=n_periods,
            years_to_maturity=years,
            day_count=day_count,
            eom_rule=eom_rule,
            frequency=frequency,
            calc_analytics=bond.calc_analytics,
            calc_cashflows=bond.calc_cashflows,
            settlement_date=settlement,
            warnings=tuple(warnings),
        )


def build_conventions(params: ResolvedParameters) -> Conventions:
    return Conventions(
        day_count=params.day_count.value,
        frequency=params.frequency.value,
        eom_rule=params.eom_rule.value,
        settlement_date=params.settlement_date,
    )


def maturity_redemption(bond: BondInput, price: Decimal) -> RedemptionInfo:
    return RedemptionInfo("Maturity", bond.maturity_date, price)
