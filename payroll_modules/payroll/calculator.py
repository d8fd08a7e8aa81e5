"""
Payslip Calculator (``payroll_modules.payroll.calculator``).

Responsibility
--------------
Composes the pure engines into one employee's monthly payslip:

    normalize salary -> overtime -> festival allowance -> gross
    -> fund contributions -> progressive tax on gross x 12 -> net

Architecture position
---------------------
**Modules layer** -- pure composition.  No session, no clock; the
orchestrator supplies the employee snapshot and the bracket table.

Invariants enforced
-------------------
* ``gross = basic + dearness + overtime + festival + other allowances``.
* ``income_tax + social_security_tax`` equals the engine's monthly tax.
* ``total_deductions = ssf_employee + income_tax + social_security_tax
  + other_deductions`` and ``net = gross - total_deductions``.

Failure modes
-------------
* ``InvalidSalaryConfigurationError`` -- salary basis lacks rate/units.
* ``NoTaxBracketsForFiscalYearError`` -- empty bracket table.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence
from uuid import UUID

from payroll_config.schema import DEFAULT_STATUTORY_CONFIG, StatutoryConfig
from payroll_engines.contribution import calculate_contributions
from payroll_engines.overtime import calculate_overtime
from payroll_engines.salary import normalize_monthly_salary
from payroll_engines.tax import ProgressiveTaxCalculator, TaxBracket
from payroll_kernel.db.types import round_money, to_decimal
from payroll_kernel.logging_config import get_logger
from payroll_modules.payroll.models import (
    AttendanceSummary,
    Employee,
    MaritalStatus,
    Payslip,
)

logger = get_logger("modules.payroll.calculator")

ZERO = Decimal("0")


class PayslipCalculator:
    """Turns an employee snapshot into a ``Payslip`` DTO."""

    def __init__(self, config: StatutoryConfig = DEFAULT_STATUTORY_CONFIG):
        self._config = config
        self._tax = ProgressiveTaxCalculator(config)

    @property
    def config(self) -> StatutoryConfig:
        return self._config

    def default_attendance(self) -> AttendanceSummary:
        days = self._config.working_days_per_month
        return AttendanceSummary(working_days=days, present_days=days)

    def calculate(
        self,
        employee: Employee,
        *,
        payroll_run_id: UUID,
        fiscal_year: str,
        brackets: Sequence[TaxBracket],
        overtime_hours: Decimal = ZERO,
        include_festival_allowance: bool = False,
        attendance: AttendanceSummary | None = None,
        other_allowances: Decimal = ZERO,
        other_deductions: Decimal = ZERO,
    ) -> Payslip:
        config = self._config
        places = config.money_decimal_places
        attendance = attendance or self.default_attendance()
        overtime_hours = to_decimal(overtime_hours)

        basic = normalize_monthly_salary(employee.salary_terms(), config)
        dearness = round_money(employee.dearness_allowance, places)
        overtime_amount = calculate_overtime(basic, overtime_hours, config)
        festival = basic if include_festival_allowance else round_money(ZERO, places)
        other_allowances = round_money(other_allowances, places)
        gross = basic + dearness + overtime_amount + festival + other_allowances

        contributions = calculate_contributions(
            basic, employee.has_contribution_fund, config,
        )
        tax_result = self._tax.calculate(
            annual_income=gross * config.months_per_year,
            brackets=brackets,
            fiscal_year=fiscal_year,
            marital_status=MaritalStatus(employee.marital_status).value,
            has_contribution_fund=employee.has_contribution_fund,
        )
        monthly_tax = tax_result.monthly_tax(config.months_per_year, places)
        social_security_tax = tax_result.monthly_social_contribution_tax(
            config.months_per_year, places,
        )
        income_tax = monthly_tax - social_security_tax
        other_deductions = round_money(other_deductions, places)

        total_deductions = (
            contributions.employee_contribution
            + income_tax
            + social_security_tax
            + other_deductions
        )
        payslip = Payslip(
            payroll_run_id=payroll_run_id,
            employee_id=employee.id,
            basic_salary=basic,
            dearness_allowance=dearness,
            overtime_hours=overtime_hours,
            overtime_amount=overtime_amount,
            festival_allowance=festival,
            other_allowances=other_allowances,
            gross_salary=gross,
            ssf_employee_contribution=contributions.employee_contribution,
            ssf_employer_contribution=contributions.employer_contribution,
            income_tax=income_tax,
            social_security_tax=social_security_tax,
            other_deductions=other_deductions,
            total_deductions=total_deductions,
            net_salary=gross - total_deductions,
            working_days=attendance.working_days,
            present_days=attendance.present_days,
            leave_days=attendance.leave_days,
        )
        logger.debug(
            "payslip_calculated",
            extra={
                "employee_id": str(employee.id),
                "salary_type": employee.effective_salary_type.value,
                "gross_salary": str(gross),
                "total_deductions": str(total_deductions),
                "net_salary": str(payslip.net_salary),
            },
        )
        return payslip
