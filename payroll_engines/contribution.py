"""
Statutory Contribution Calculator - Social Security Fund split.

Enrolled employees contribute a fixed share of basic salary and the
employer a larger one (11% / 20% by default).  Non-enrolled employees
contribute nothing here; the tax calculator charges the social
contribution bracket instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_kernel.db.types import round_money

ZERO = Decimal("0")


@dataclass(frozen=True)
class ContributionResult:
    """Employee and employer fund contributions for one month."""

    employee_contribution: Decimal
    employer_contribution: Decimal

    @property
    def total_contribution(self) -> Decimal:
        return self.employee_contribution + self.employer_contribution


NO_CONTRIBUTION = ContributionResult(ZERO, ZERO)


def calculate_contributions(
    basic_salary: Decimal,
    has_contribution_fund: bool,
    config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
) -> ContributionResult:
    """
    Split of the contribution fund on monthly basic salary.

    Amounts are rounded half-up to the configured money precision.
    """
    if not has_contribution_fund:
        return NO_CONTRIBUTION
    places = config.money_decimal_places
    return ContributionResult(
        employee_contribution=round_money(
            basic_salary * config.employee_contribution_rate, places,
        ),
        employer_contribution=round_money(
            basic_salary * config.employer_contribution_rate, places,
        ),
    )
