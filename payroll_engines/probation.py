"""
Probation Scheduler - Probation end date from join date.

Calendar-month addition clamps the day of month to the target month's
length: 31 January + 1 month is the last day of February.
"""

from __future__ import annotations

import calendar
from datetime import date

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig


def add_months(start: date, months: int) -> date:
    """Add calendar months to a date, clamping the day of month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def probation_end_date(
    date_of_join: date,
    probation_months: int | None = None,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> date:
    """
    ``date_of_join`` plus the probation length.

    ``probation_months=None`` uses the configured default (6 months).
    """
    if probation_months is None:
        probation_months = config.default_probation_months
    if probation_months < 0:
        raise ValueError(f"probation_months cannot be negative, got {probation_months}")
    return add_months(date_of_join, probation_months)


def is_on_probation(probation_end: date | None, today: date) -> bool:
    """True while ``today`` is before a known probation end date."""
    if probation_end is None:
        return False
    return today < probation_end
