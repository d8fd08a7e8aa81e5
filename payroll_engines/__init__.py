"""
Payroll engines: pure statutory calculators.

No I/O, no session, no clock.  Every calculator takes a
``payroll_config.StatutoryConfig`` so rates and day counts are supplied by
the caller rather than baked in.

Engines:
    salary          salary basis -> monthly equivalent
    contribution    social security fund employee/employer split
    tax             progressive income tax with bracket breakdown
    overtime        extra hours -> extra pay
    probation       probation end date and on-probation predicate
    leave_accrual   accrued / carried-forward / available leave days
"""

from payroll_engines.contribution import ContributionResult, calculate_contributions
from payroll_engines.leave_accrual import (
    AccrualType,
    LeaveAccrualEngine,
    LeaveBalanceResult,
    LeavePolicy,
)
from payroll_engines.overtime import calculate_overtime
from payroll_engines.probation import is_on_probation, probation_end_date
from payroll_engines.salary import (
    EmploymentType,
    SalaryTerms,
    SalaryType,
    default_salary_type,
    normalize_monthly_salary,
)
from payroll_engines.tax import (
    ProgressiveTaxCalculator,
    TaxBracket,
    TaxBreakdownLine,
    TaxCalculationResult,
)

__all__ = [
    "AccrualType",
    "ContributionResult",
    "EmploymentType",
    "LeaveAccrualEngine",
    "LeaveBalanceResult",
    "LeavePolicy",
    "ProgressiveTaxCalculator",
    "SalaryTerms",
    "SalaryType",
    "TaxBracket",
    "TaxBreakdownLine",
    "TaxCalculationResult",
    "calculate_contributions",
    "calculate_overtime",
    "default_salary_type",
    "is_on_probation",
    "normalize_monthly_salary",
    "probation_end_date",
]
