"""
Decimal Bond Yield Engine

Price <-> yield for seven payment structures in exact decimal arithmetic:
- decimal_math: ln / exp / pow series over decimal.Decimal
- solver: clamped Newton-Raphson with strict + relaxed tolerance
- bonds: BondInput, enums, result types, validation + convention resolution
- structures: the seven calculators + calculate_bond dispatch/envelope
- calls: yield-to-call / yield-to-worst
- risk: Macaulay/modified duration, convexity, PV01, YV32
- distressed: IRR at market for recovery analysis
- portfolio / scenarios: pandas batch valuation + yield-shift repricing

Callers should import from this package.
"""
from .bonds import (
    Analytics,
    BondInput,
    BondValuation,
    CallRedemption,
    CashFlow,
    ComputationOutput,
    DayCount,
    EomRule,
    Frequency,
    PaymentType,
    SecurityType,
    StepCoupon,
)
from .config import VERSION as __version__
from .decimal_math import dec_exp, dec_ln, dec_pow
from .distressed import irr_at_market
from .errors import BondMathError, ConvergenceError, InvalidInputError
from .solver import SolverResult, newton_raphson
from .structures import (
    CALCULATORS,
    calculate_bond,
    value_discount,
    value_iam,
    value_multistep,
    value_part_pik,
    value_periodic,
    value_pik,
    value_stepped,
)
