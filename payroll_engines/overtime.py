"""
Overtime Calculator - Extra hours to extra pay.

The hourly rate is derived from the normalized monthly salary over the
standard monthly hours (208) and multiplied by the statutory overtime
multiplier (1.5x by default).
"""

from __future__ import annotations

from decimal import Decimal

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_kernel.db.types import round_money

ZERO = Decimal("0")


def calculate_overtime(
    monthly_salary: Decimal,
    overtime_hours: Decimal,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> Decimal:
    """
    Overtime pay for the period, rounded half-up.

    Zero hours gives zero pay.  Negative hours are rejected.

    Raises:
        ValueError: ``overtime_hours`` is negative.
    """
    if overtime_hours < 0:
        raise ValueError(f"overtime_hours cannot be negative, got {overtime_hours}")
    if overtime_hours == 0:
        return round_money(ZERO, config.money_decimal_places)
    unrounded_hourly = monthly_salary / config.working_hours_per_month
    return round_money(
        overtime_hours * unrounded_hourly * config.overtime_multiplier,
        config.money_decimal_places,
    )
