"""
Module: payroll_kernel.db.types
Responsibility: Annotated type aliases and the rounding helper used for every
    monetary and day-count value in payroll.
Architecture position: Kernel > DB.  May be imported by every other layer.

Invariants enforced:
    - No floats.  All monetary amounts and day counts use Decimal.
    - round_money() is the ONLY sanctioned rounding function for payslip
      amounts (round-half-up).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Tax or contribution rate as a fraction (0.11 == 11%)
Rate = Annotated[Decimal, Numeric(38, 18)]

# Short identifier strings (enum values, codes, fiscal-year labels)
ShortCode = Annotated[str, String(50)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value) -> Decimal:
    """
    Coerce an int, str or Decimal to Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places (half-up by default).

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode.

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "1" if decimal_places == 0 else "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)
