"""
Payroll Domain Models (``payroll_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of payroll:
employees, tax brackets, attendance summaries, payroll runs, payslips and
run summaries.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``PayslipCalculator`` and ``PayrollRunService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``PayrollRun.month`` is 1-12.
* Exactly one of ``basic_salary`` or ``rate`` (+ units for per-task) is
  authoritative for an employee, selected by ``effective_salary_type``.

Failure modes
-------------
* Construction with invalid enum values or out-of-range fields raises
  ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_engines.probation import is_on_probation, probation_end_date
from payroll_engines.salary import (
    EmploymentType,
    SalaryTerms,
    SalaryType,
    default_salary_type,
)

ZERO = Decimal("0")


class MaritalStatus(str, Enum):
    """Tax filing status; selects the bracket table."""
    SINGLE = "single"
    MARRIED = "married"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PayrollRunStatus(str, Enum):
    """Payroll run lifecycle states (forward-only)."""
    DRAFT = "draft"
    PROCESSED = "processed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class Employee:
    """
    Employee identity and compensation terms.

    ``salary_type=None`` derives the basis from ``employment_type``.
    ``ssf_number`` present means the employee is enrolled in the social
    security fund.
    """
    company_id: UUID
    employee_code: str
    full_name: str
    employment_type: EmploymentType = EmploymentType.REGULAR
    salary_type: SalaryType | None = None
    basic_salary: Decimal = ZERO
    rate: Decimal | None = None
    estimated_units_per_month: int | None = None
    dearness_allowance: Decimal = ZERO
    marital_status: MaritalStatus = MaritalStatus.SINGLE
    gender: Gender | None = None
    ssf_number: str | None = None
    date_of_join: date | None = None
    probation_months: int | None = None
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if self.basic_salary < 0:
            raise ValueError("basic_salary cannot be negative")
        if self.dearness_allowance < 0:
            raise ValueError("dearness_allowance cannot be negative")

    @property
    def has_contribution_fund(self) -> bool:
        return bool(self.ssf_number and self.ssf_number.strip())

    @property
    def effective_salary_type(self) -> SalaryType:
        if self.salary_type is not None:
            return SalaryType(self.salary_type)
        return default_salary_type(EmploymentType(self.employment_type))

    def salary_terms(self) -> SalaryTerms:
        salary_type = self.effective_salary_type
        if salary_type == SalaryType.MONTHLY:
            return SalaryTerms(salary_type=salary_type, basic_salary=self.basic_salary)
        return SalaryTerms(
            salary_type=salary_type,
            rate=self.rate,
            estimated_units_per_month=self.estimated_units_per_month,
        )

    def probation_end_date(
        self, config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
    ) -> date | None:
        """
        Join date plus ``probation_months`` (the configured default when unset).

        ``None`` when the join date is unknown.
        """
        if self.date_of_join is None:
            return None
        return probation_end_date(self.date_of_join, self.probation_months, config)

    def is_on_probation(
        self, today: date, config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG,
    ) -> bool:
        return is_on_probation(self.probation_end_date(config), today)


@dataclass(frozen=True)
class TaxBracketRecord:
    """A persisted tax slab scoped to (fiscal_year, marital_status)."""
    fiscal_year: str
    marital_status: MaritalStatus
    min_amount: Decimal
    max_amount: Decimal | None
    rate: Decimal
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class AttendanceSummary:
    """Attendance-derived day counts for one employee and period."""
    working_days: int = 26
    present_days: int = 26
    leave_days: Decimal = ZERO

    def __post_init__(self):
        if self.working_days < 0 or self.present_days < 0 or self.leave_days < 0:
            raise ValueError("attendance day counts cannot be negative")


@dataclass(frozen=True)
class PayrollRun:
    """One payroll batch for a company, fiscal year and month."""
    company_id: UUID
    fiscal_year: str
    month: int
    status: PayrollRunStatus = PayrollRunStatus.DRAFT
    processed_at: datetime | None = None
    finalized_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")
        if not self.fiscal_year:
            raise ValueError("fiscal_year is required")


@dataclass(frozen=True)
class Payslip:
    """
    Computed pay of one employee for one payroll run.

    ``gross_salary = basic_salary + dearness_allowance + overtime_amount
    + festival_allowance + other_allowances``;
    ``net_salary = gross_salary - total_deductions``.
    """
    payroll_run_id: UUID
    employee_id: UUID
    basic_salary: Decimal
    dearness_allowance: Decimal
    overtime_hours: Decimal
    overtime_amount: Decimal
    festival_allowance: Decimal
    other_allowances: Decimal
    gross_salary: Decimal
    ssf_employee_contribution: Decimal
    ssf_employer_contribution: Decimal
    income_tax: Decimal
    social_security_tax: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    working_days: int = 26
    present_days: int = 26
    leave_days: Decimal = ZERO
    id: UUID = field(default_factory=uuid4)

    @property
    def total_tax(self) -> Decimal:
        return self.income_tax + self.social_security_tax


@dataclass(frozen=True)
class PayrollSummary:
    """Totals over a run's payslips."""
    payroll_run_id: UUID
    employee_count: int
    total_gross: Decimal
    total_ssf_employee: Decimal
    total_ssf_employer: Decimal
    total_tax: Decimal
    total_deductions: Decimal
    total_net: Decimal
