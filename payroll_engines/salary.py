"""
Salary Normalizer - Convert any salary basis to a monthly equivalent.

Pure functions with no I/O.  The day and hour counts come from the
``StatutoryConfig`` passed in (26 working days, 8 hours per day by default).

Usage:
    from decimal import Decimal
    from payroll_engines.salary import SalaryTerms, SalaryType, normalize_monthly_salary

    terms = SalaryTerms(salary_type=SalaryType.DAILY, rate=Decimal("1500"))
    normalize_monthly_salary(terms)  # Decimal("39000.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_kernel.db.types import round_money
from payroll_kernel.exceptions import InvalidSalaryConfigurationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.salary")


class EmploymentType(str, Enum):
    """Employment categories under the Labour Act."""

    REGULAR = "regular"
    WORK_BASED = "work_based"
    TIME_BOUND = "time_bound"
    CASUAL = "casual"
    PART_TIME = "part_time"
    TASK_BASED = "task_based"


class SalaryType(str, Enum):
    """Basis on which an employee's pay is quoted."""

    MONTHLY = "monthly"
    DAILY = "daily"
    HOURLY = "hourly"
    PER_TASK = "per_task"


EMPLOYMENT_TO_SALARY_TYPE: dict[EmploymentType, SalaryType] = {
    EmploymentType.REGULAR: SalaryType.MONTHLY,
    EmploymentType.TIME_BOUND: SalaryType.MONTHLY,
    EmploymentType.WORK_BASED: SalaryType.DAILY,
    EmploymentType.CASUAL: SalaryType.HOURLY,
    EmploymentType.PART_TIME: SalaryType.HOURLY,
    EmploymentType.TASK_BASED: SalaryType.PER_TASK,
}


def default_salary_type(employment_type: EmploymentType) -> SalaryType:
    """Salary basis implied by an employment type (monthly if unmapped)."""
    return EMPLOYMENT_TO_SALARY_TYPE.get(employment_type, SalaryType.MONTHLY)


@dataclass(frozen=True)
class SalaryTerms:
    """
    Compensation terms that feed normalization.

    Exactly one of ``basic_salary`` (monthly) or ``rate`` (+ units for
    per-task) is authoritative, depending on ``salary_type``.
    """

    salary_type: SalaryType
    basic_salary: Decimal = Decimal("0")
    rate: Decimal | None = None
    estimated_units_per_month: int | None = None

    def __post_init__(self) -> None:
        if self.basic_salary < 0:
            raise ValueError("basic_salary cannot be negative")


def _require_rate(terms: SalaryTerms) -> Decimal:
    if terms.rate is None or terms.rate <= 0:
        raise InvalidSalaryConfigurationError(
            SalaryType(terms.salary_type).value, "rate", terms.rate,
        )
    return terms.rate


def _monthly(terms: SalaryTerms, config: StatutoryConfig) -> Decimal:
    return terms.basic_salary


def _daily(terms: SalaryTerms, config: StatutoryConfig) -> Decimal:
    return _require_rate(terms) * config.working_days_per_month


def _hourly(terms: SalaryTerms, config: StatutoryConfig) -> Decimal:
    return _require_rate(terms) * config.working_hours_per_month


def _per_task(terms: SalaryTerms, config: StatutoryConfig) -> Decimal:
    rate = _require_rate(terms)
    units = terms.estimated_units_per_month
    if units is None or units <= 0:
        raise InvalidSalaryConfigurationError(
            SalaryType(terms.salary_type).value, "estimated_units_per_month", units,
        )
    return rate * units


_NORMALIZERS: dict[SalaryType, Callable[[SalaryTerms, StatutoryConfig], Decimal]] = {
    SalaryType.MONTHLY: _monthly,
    SalaryType.DAILY: _daily,
    SalaryType.HOURLY: _hourly,
    SalaryType.PER_TASK: _per_task,
}


def normalize_monthly_salary(
    terms: SalaryTerms,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> Decimal:
    """
    Monthly-equivalent salary for any salary basis.

    - monthly  -> basic_salary unchanged
    - daily    -> rate x working days per month
    - hourly   -> rate x working hours per month
    - per_task -> rate x estimated units per month

    Raises:
        InvalidSalaryConfigurationError: rate/units missing or non-positive
            for a non-monthly basis.
    """
    try:
        salary_type = SalaryType(terms.salary_type)
    except ValueError:
        raise InvalidSalaryConfigurationError(
            str(terms.salary_type), "salary_type", terms.salary_type,
        ) from None
    normalizer = _NORMALIZERS[salary_type]
    monthly = round_money(normalizer(terms, config), config.money_decimal_places)
    logger.debug(
        "salary_normalized",
        extra={
            "salary_type": salary_type.value,
            "monthly_salary": str(monthly),
        },
    )
    return monthly


def daily_rate(
    monthly_salary: Decimal,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> Decimal:
    """Daily rate from a monthly salary (used for leave encashment)."""
    return round_money(
        monthly_salary / config.working_days_per_month, config.money_decimal_places,
    )


def hourly_rate(
    monthly_salary: Decimal,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> Decimal:
    """Hourly rate from a monthly salary, rounded for display."""
    return round_money(
        monthly_salary / config.working_hours_per_month, config.money_decimal_places,
    )


def rate_from_monthly(
    monthly_salary: Decimal,
    salary_type: SalaryType,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> Decimal:
    """
    Inverse of normalization for daily and hourly bases.

    Monthly and per-task bases return the monthly figure unchanged.
    """
    if salary_type == SalaryType.DAILY:
        return daily_rate(monthly_salary, config)
    if salary_type == SalaryType.HOURLY:
        return hourly_rate(monthly_salary, config)
    return monthly_salary
