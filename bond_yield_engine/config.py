# config.py
# Purpose: numerical constants, defaults and the decimal context shared by the engine

from __future__ import annotations

from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    ROUND_HALF_EVEN,
)

# 28 significant digits, the width of a 96-bit decimal mantissa
PRECISION = 28
PRECISION_TAG = "python_decimal_28"

VERSION = "0.1.0"

DECIMAL_CONTEXT = Context(
    prec=PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

# Newton-Raphson
MAX_ITERATIONS = 100
TOLERANCE = Decimal("0.0000001")
RELAXED_TOLERANCE = Decimal("0.01")
FD_BUMP = Decimal("0.0000001")
MIN_DERIVATIVE = Decimal("0.00000001")
YIELD_FLOOR = Decimal("-0.5")
YIELD_CAP = Decimal("5.0")

# Seeds for structures without a natural first guess
STEPPED_SEED = Decimal("0.025")
PART_PIK_SEED = Decimal("0.04")

# Series expansions
LN2 = Decimal("0.6931471805599453094172321215")
LN_SERIES_TERMS = 30
EXP_MAX_TERMS = 200
EXP_EPSILON = Decimal("1E-30")

PAR = Decimal("100")
BASIS_POINTS = Decimal("10000")
MID_PERIOD = Decimal("0.5")

DEFAULT_SETTLEMENT_DATE = "02/22/2026"
DATE_FORMAT = "%m/%d/%Y"

DAYS_PER_YEAR = Decimal("365.25")
DAYS_PER_MONTH = Decimal("30.4375")

METHODOLOGY = "Decimal bond math (Newton-Raphson, 28-digit decimal)"

# security type -> (day count, frequency)
SECURITY_DEFAULTS = {
    "Treasury": ("ActualActual", "Semiannual"),
    "Agency": ("SSCM30_360", "Semiannual"),
    "Corporate": ("SSCM30_360", "Semiannual"),
    "Municipal": ("SSCM30_360", "Semiannual"),
    "CD": ("Actual360", "Monthly"),
}
